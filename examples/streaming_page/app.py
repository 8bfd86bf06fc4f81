"""Streaming page -- a reactive pager with a slow, awaited section.

The page header and the pager stream immediately; the activity list is a
Deferred chunk, so everything after it waits until it resolves, and the
output still arrives in source order.

Run:
    python app.py
"""

import asyncio

from boomer import (
    Attr,
    Await,
    CallSite,
    ComponentSource,
    Element,
    EventBinding,
    Expr,
    ScopeRecord,
    Text,
    compile_component,
    dump_tree,
)

state = {"page": 1}


async def recent_activity() -> str:
    await asyncio.sleep(0.01)
    return "3 new <comments>"


page_scope = ScopeRecord(
    1,
    0,
    "Page",
    declarations=frozenset({"page"}),
    calls=(CallSite(12, 4, "Pager", args=("page",)),),
    children=(ScopeRecord(3, 0, "Pager", params=("current",)),),
)

template = Element(
    4,
    2,
    "main",
    children=(
        Element(5, 4, "h1", children=(Text(5, 8, "Inbox"),)),
        Element(
            6,
            4,
            "nav",
            attrs=(Attr(6, 9, "class", "pager"),),
            children=(
                Text(7, 6, "Page "),
                Expr(7, 11, accessor=lambda: state["page"], reads=frozenset({"current"}), source="current()"),
                Element(
                    8,
                    6,
                    "button",
                    attrs=(EventBinding(8, 14, "click", "nextPage"),),
                    children=(Text(8, 38, "Next"),),
                ),
            ),
        ),
        Element(10, 4, "aside", children=(Await(10, 11, producer=recent_activity, source="await recentActivity()"),)),
        Element(11, 4, "footer", children=(Text(11, 12, "fin"),)),
    ),
)

component = compile_component(
    ComponentSource(name="Pager", scope=page_scope, template=template, template_scope="Pager")
)


async def _collect() -> list[bytes]:
    return [data async for data in component.render_stream()]


chunks = asyncio.run(_collect())
output = b"".join(chunks).decode()


def main() -> None:
    print(dump_tree(component.chunks))
    print(f"\nStreaming {len(chunks)} chunks:\n")
    for i, chunk in enumerate(chunks):
        print(f"[chunk {i}] {chunk!r}")
    print(f"\n--- Full output ---\n{output}")


if __name__ == "__main__":
    main()
