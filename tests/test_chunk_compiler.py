"""Tests for the chunk tree compiler."""

from __future__ import annotations

import pytest
from hypothesis import given, settings

from boomer.chunks import (
    AnchorInfo,
    AsyncBranchSelector,
    BindingKind,
    BranchSelector,
    ChunkCompiler,
    Deferred,
    Dynamic,
    Group,
    Hole,
    Literal,
    Reactivity,
    compile_chunks,
    dump_tree,
    iter_leaves,
    render_sync,
)
from boomer.config import CompilerConfig
from boomer.utils.html import Markup

from .factories import attr, await_, cond, el, expr, frag, on, text
from .strategies import NAMES, markup_trees

PAGE = Reactivity.from_signals({"page"})


async def _fetch() -> str:
    return "fetched"


def _leaves(tree):
    return [leaf.chunk for leaf in iter_leaves(tree.root)]


class TestStaticMarkup:
    """Subtrees without reactive reads compile to merged literals."""

    def test_static_tree_is_one_literal(self) -> None:
        template = el("div", el("h1", text("Title")), el("p", text("a & b")))
        tree = compile_chunks(template)
        assert tree.root == Group((Literal("<div><h1>Title</h1><p>a &amp; b</p></div>"),))
        assert tree.anchors == ()

    def test_zero_anchors_without_reactivity(self, pager_template) -> None:
        tree = compile_chunks(pager_template, Reactivity.none())
        assert tree.anchors == ()
        assert all(leaf.anchor is None for leaf in iter_leaves(tree.root))

    def test_text_escaping_leaves_quotes(self) -> None:
        tree = compile_chunks(el("p", text("<\"it's\">")))
        assert render_sync(tree.root) == "<p>&lt;\"it's\"&gt;</p>"

    def test_static_attributes(self) -> None:
        template = el(
            "input",
            attrs=[attr("type", "text"), attr("value", 'say "hi"'), attr("disabled")],
        )
        tree = compile_chunks(template)
        assert tree.root == Group(
            (Literal('<input type="text" value="say &quot;hi&quot;" disabled>'),)
        )

    def test_void_element_has_no_closing_tag(self) -> None:
        tree = compile_chunks(el("p", text("a"), el("br"), text("b")))
        assert render_sync(tree.root) == "<p>a<br>b</p>"

    def test_fragment_root(self) -> None:
        tree = compile_chunks(frag(el("h1", text("A")), el("h2", text("B"))))
        assert tree.root == Group((Literal("<h1>A</h1><h2>B</h2>"),))

    def test_merge_literals_disabled(self) -> None:
        tree = compile_chunks(el("p", text("a")), config=CompilerConfig(merge_literals=False))
        assert tree.root == Group((Literal("<p"), Literal(">"), Literal("a"), Literal("</p>")))

    def test_unknown_node_type(self) -> None:
        with pytest.raises(TypeError, match="Cannot compile markup node"):
            compile_chunks(attr("class", "x"))


class TestExpressions:
    def test_non_reactive_expression_is_plain_dynamic(self) -> None:
        node = expr("name()", "Ada")
        tree = compile_chunks(el("p", text("Hi "), node))
        assert tree.root == Group(
            (
                Literal("<p>Hi "),
                Dynamic(node.accessor, escape=True, source="name()"),
                Literal("</p>"),
            )
        )

    def test_autoescape_default(self) -> None:
        tree = compile_chunks(el("p", expr("html()", "<b>")))
        assert render_sync(tree.root) == "<p>&lt;b&gt;</p>"

    def test_autoescape_disabled_in_config(self) -> None:
        tree = compile_chunks(el("p", expr("html()", "<b>")), config=CompilerConfig(autoescape=False))
        assert render_sync(tree.root) == "<p><b></p>"

    def test_explicit_escape_overrides_config(self) -> None:
        tree = compile_chunks(el("p", expr("html()", "<b>", escape=False)))
        assert render_sync(tree.root) == "<p><b></p>"

    def test_markup_values_are_trusted(self) -> None:
        tree = compile_chunks(el("p", expr("html()", Markup("<i>ok</i>"))))
        assert render_sync(tree.root) == "<p><i>ok</i></p>"

    def test_await_becomes_deferred(self) -> None:
        node = await_("await fetch()", _fetch)
        tree = compile_chunks(el("pre", node))
        assert _leaves(tree)[1] == Deferred(_fetch, escape=True, source="await fetch()")


class TestAnchors:
    def test_pager_example(self, pager_template) -> None:
        tree = compile_chunks(pager_template, PAGE)
        anchor = "scope_0_signal_page"
        accessor = pager_template.children[1].accessor
        assert tree.root == Group(
            (
                Group(
                    (
                        Literal(f'<p data-bmr="{anchor}">Current Page '),
                        Dynamic(accessor, escape=True, source="page()", anchor=anchor),
                        Literal("</p>"),
                    ),
                    anchor=anchor,
                ),
            )
        )
        assert render_sync(tree.root) == f'<p data-bmr="{anchor}">Current Page 1</p>'

    def test_anchor_info(self, pager_template) -> None:
        tree = compile_chunks(pager_template, PAGE)
        assert tree.anchors == (
            AnchorInfo(
                anchor="scope_0_signal_page",
                scope_id=0,
                kind=BindingKind.SIGNAL,
                binding="page",
                reads=("page",),
                handlers=(),
                template=("Current Page ", Hole("page()")),
            ),
        )
        assert tree.anchor("scope_0_signal_page").binding == "page"
        with pytest.raises(KeyError):
            tree.anchor("scope_0_signal_nope")

    def test_only_nearest_element_is_anchored(self, pager_template) -> None:
        template = el("main", el("section", pager_template), el("footer", text("static")))
        tree = compile_chunks(template, PAGE)
        html = render_sync(tree.root)
        assert html == (
            '<main><section><p data-bmr="scope_0_signal_page">Current Page 1</p></section>'
            "<footer>static</footer></main>"
        )
        assert tree.anchor_ids == ("scope_0_signal_page",)

    def test_scope_id_in_anchor(self, pager_template) -> None:
        tree = ChunkCompiler().compile(pager_template, PAGE, scope_id=3)
        assert tree.anchor_ids == ("scope_3_signal_page",)
        assert tree.anchors[0].scope_id == 3

    def test_custom_anchor_attribute(self, pager_template) -> None:
        config = CompilerConfig(anchor_attribute="data-anchor")
        tree = compile_chunks(pager_template, PAGE, config=config)
        assert render_sync(tree.root).startswith('<p data-anchor="scope_0_signal_page">')

    def test_duplicate_anchor_ids_get_suffixes(self) -> None:
        template = frag(
            el("p", expr("page()", 1, reads={"page"})),
            el("span", expr("page()", 1, reads={"page"})),
            el("em", expr("page()", 1, reads={"page"})),
        )
        tree = compile_chunks(template, PAGE)
        assert tree.anchor_ids == (
            "scope_0_signal_page",
            "scope_0_signal_page_2",
            "scope_0_signal_page_3",
        )

    def test_suffix_never_collides_with_plain_binding_name(self) -> None:
        template = el(
            "div",
            el("p", expr("page()", 1, reads={"page"})),
            el("p", expr("page()", 1, reads={"page"})),
            el("p", expr("page_2()", 2, reads={"page_2"})),
        )
        tree = compile_chunks(template, Reactivity.from_signals({"page", "page_2"}))
        assert tree.anchor_ids == (
            "scope_0_signal_page",
            "scope_0_signal_page_2",
            "scope_0_signal_page_2_2",
        )
        assert len(set(tree.anchor_ids)) == len(tree.anchor_ids)

    def test_binding_name_is_first_reactive_read(self) -> None:
        template = el(
            "p",
            expr("b()", "B", reads={"b"}),
            expr("a()", "A", reads={"a"}),
        )
        tree = compile_chunks(template, Reactivity.from_signals({"a", "b"}))
        (info,) = tree.anchors
        assert info.anchor == "scope_0_signal_b"
        assert info.reads == ("a", "b")

    def test_expression_reading_several_signals(self) -> None:
        template = el("p", expr("total()", 3, reads={"price", "count"}))
        tree = compile_chunks(template, Reactivity.from_signals({"price", "count"}))
        assert tree.anchor_ids == ("scope_0_signal_count",)

    def test_reads_of_non_signals_stay_static(self) -> None:
        template = el("p", expr("label()", "x", reads={"label"}))
        tree = compile_chunks(template, PAGE)
        assert tree.anchors == ()

    def test_nested_reactive_elements_each_anchored(self) -> None:
        template = el(
            "div",
            expr("page()", 1, reads={"page"}),
            el("span", expr("page()", 1, reads={"page"})),
        )
        tree = compile_chunks(template, PAGE)
        assert tree.anchor_ids == ("scope_0_signal_page_2", "scope_0_signal_page")
        assert render_sync(tree.root) == (
            '<div data-bmr="scope_0_signal_page">1'
            '<span data-bmr="scope_0_signal_page_2">1</span></div>'
        )

    def test_patch_template_flattens_nested_groups(self) -> None:
        template = el(
            "div",
            expr("page()", 1, reads={"page"}),
            el("span", expr("page()", 1, reads={"page"})),
        )
        tree = compile_chunks(template, PAGE)
        outer = tree.anchor("scope_0_signal_page")
        assert outer.template == (
            Hole("page()"),
            '<span data-bmr="scope_0_signal_page_2">',
            Hole("page()"),
            "</span>",
        )

    def test_fragment_children_anchor_parent_element(self) -> None:
        template = el("p", frag(text("Page "), expr("page()", 1, reads={"page"})))
        tree = compile_chunks(template, PAGE)
        assert render_sync(tree.root) == '<p data-bmr="scope_0_signal_page">Page 1</p>'


class TestRootLevelMarkers:
    def test_reactive_expression_without_element(self) -> None:
        template = frag(text("Page "), expr("page()", 3, reads={"page"}))
        tree = compile_chunks(template, PAGE)
        assert render_sync(tree.root) == (
            "Page <!--scope_0_signal_page-->3<!--/scope_0_signal_page-->"
        )
        (info,) = tree.anchors
        assert info.template == (Hole("page()"),)

    def test_marker_group_is_anchored(self) -> None:
        tree = compile_chunks(expr("page()", 3, reads={"page"}), PAGE)
        (group,) = tree.root.children
        assert group.anchor == "scope_0_signal_page"
        assert group.children[0] == Literal("<!--scope_0_signal_page-->")
        assert group.children[1].anchor == "scope_0_signal_page"


class TestAttributes:
    def test_dynamic_attribute_is_escaped(self) -> None:
        template = el("a", text("next"), attrs=[attr("href", expr("url()", "/p?a=1&b=2"))])
        tree = compile_chunks(template)
        assert render_sync(tree.root) == '<a href="/p?a=1&amp;b=2">next</a>'
        assert tree.anchors == ()

    def test_reactive_attribute_anchors_element(self) -> None:
        template = el(
            "a",
            text("next"),
            attrs=[attr("href", expr("url()", "/2", reads={"url"}))],
        )
        tree = compile_chunks(template, Reactivity.from_signals({"url"}))
        assert render_sync(tree.root) == '<a data-bmr="scope_0_signal_url" href="/2">next</a>'
        (info,) = tree.anchors
        assert info.template == ("next",)
        assert info.reads == ("url",)

    def test_attribute_honours_escape_flag(self) -> None:
        raw = expr("attrs()", "a&b", escape=False)
        template = el("a", text("x"), attrs=[attr("title", raw)])
        tree = compile_chunks(template)
        assert render_sync(tree.root) == '<a title="a&b">x</a>'

    def test_attribute_default_escape_follows_config(self) -> None:
        template = el("a", text("x"), attrs=[attr("title", expr("t()", "a&b"))])
        tree = compile_chunks(template, config=CompilerConfig(autoescape=False))
        assert render_sync(tree.root) == '<a title="a&b">x</a>'


class TestEventBindings:
    def test_event_binding_anchors_without_rendering(self) -> None:
        template = el("button", text("Next"), attrs=[on("click", "incrementPage")])
        tree = compile_chunks(template)
        assert render_sync(tree.root) == (
            '<button data-bmr="scope_0_handler_incrementPage">Next</button>'
        )
        (info,) = tree.anchors
        assert info.kind is BindingKind.HANDLER
        assert info.binding == "incrementPage"
        assert info.handlers == (("click", "incrementPage"),)

    def test_handler_first_in_source_order_names_anchor(self) -> None:
        template = el(
            "button",
            expr("page()", 1, reads={"page"}),
            attrs=[on("click", "increment"), on("focus", "track")],
        )
        tree = compile_chunks(template, PAGE)
        (info,) = tree.anchors
        assert info.anchor == "scope_0_handler_increment"
        assert info.handlers == (("click", "increment"), ("focus", "track"))
        assert info.reads == ("page",)


class TestConditionals:
    def test_static_conditional(self) -> None:
        flag = {"on": True}
        node = cond(lambda: flag["on"], [el("b", text("yes"))], [text("no")])
        tree = compile_chunks(el("div", node))
        (chunk,) = [c for c in _leaves(tree) if not isinstance(c, Literal)]
        assert isinstance(chunk, Dynamic)
        assert chunk.escape is False
        assert chunk.anchor is None
        assert chunk.accessor == BranchSelector(
            node.test, Group((Literal("<b>yes</b>"),)), Group((Literal("no"),))
        )
        assert render_sync(tree.root) == "<div><b>yes</b></div>"
        flag["on"] = False
        assert render_sync(tree.root) == "<div>no</div>"
        assert tree.anchors == ()

    def test_reactive_test_anchors_enclosing_element(self) -> None:
        node = cond(lambda: True, [text("on")], [text("off")], reads={"page"})
        tree = compile_chunks(el("div", node), PAGE)
        assert tree.anchor_ids == ("scope_0_signal_page",)
        assert render_sync(tree.root) == '<div data-bmr="scope_0_signal_page">on</div>'

    def test_reactive_branch_makes_conditional_reactive(self) -> None:
        node = cond(lambda: True, [el("span", expr("page()", 7, reads={"page"}))], [])
        tree = compile_chunks(el("div", node), PAGE)
        # One anchor for the whole conditional; the branch element is not anchored.
        assert tree.anchor_ids == ("scope_0_signal_page",)
        assert render_sync(tree.root) == '<div data-bmr="scope_0_signal_page"><span>7</span></div>'

    def test_reactive_else_branch(self) -> None:
        node = cond(lambda: False, [text("none")], [expr("page()", 2, reads={"page"})])
        tree = compile_chunks(el("div", node), PAGE)
        assert tree.anchor_ids == ("scope_0_signal_page",)
        assert render_sync(tree.root) == '<div data-bmr="scope_0_signal_page">2</div>'

    def test_branch_with_await_becomes_deferred(self) -> None:
        node = cond(lambda: True, [await_("await fetch()", _fetch)], [text("skip")])
        tree = compile_chunks(el("div", node))
        chunk = _leaves(tree)[1]
        assert isinstance(chunk, Deferred)
        assert isinstance(chunk.producer, AsyncBranchSelector)

    def test_root_level_reactive_conditional_gets_markers(self) -> None:
        node = cond(lambda: True, [text("on")], reads={"page"})
        tree = compile_chunks(node, PAGE)
        assert render_sync(tree.root) == (
            "<!--scope_0_signal_page-->on<!--/scope_0_signal_page-->"
        )

    def test_handler_in_branch_anchors_enclosing_element(self) -> None:
        node = cond(lambda: True, [el("button", text("+"), attrs=[on("click", "inc")])])
        tree = compile_chunks(el("div", node), Reactivity.from_signals(set()))
        (info,) = tree.anchors
        assert info.anchor == "scope_0_handler_inc"
        assert info.kind is BindingKind.HANDLER
        assert info.handlers == (("click", "inc"),)
        # The branch element itself carries no anchor of its own.
        assert render_sync(tree.root) == '<div data-bmr="scope_0_handler_inc"><button>+</button></div>'

    def test_branch_handlers_join_signal_anchor(self) -> None:
        node = cond(
            lambda: False,
            [text("none")],
            [el("button", expr("page()", 2, reads={"page"}), attrs=[on("click", "next")])],
        )
        tree = compile_chunks(el("div", node), PAGE)
        (info,) = tree.anchors
        assert info.anchor == "scope_0_signal_page"
        assert info.reads == ("page",)
        assert info.handlers == (("click", "next"),)

    def test_root_level_conditional_with_handler_gets_markers(self) -> None:
        node = cond(lambda: True, [el("button", text("+"), attrs=[on("click", "inc")])])
        tree = compile_chunks(node)
        assert render_sync(tree.root) == (
            "<!--scope_0_handler_inc--><button>+</button><!--/scope_0_handler_inc-->"
        )
        assert tree.anchors[0].handlers == (("click", "inc"),)


class TestDeterminism:
    def test_compile_twice_is_identical(self, pager_template) -> None:
        template = el(
            "div",
            pager_template,
            el("button", text("Next"), attrs=[on("click", "incrementPage")]),
            cond(lambda: True, [text("a")], [text("b")], reads={"page"}),
        )
        first = compile_chunks(template, PAGE)
        second = compile_chunks(template, PAGE)
        assert first == second
        assert dump_tree(first) == dump_tree(second)

    def test_compiler_instance_is_reusable(self, pager_template) -> None:
        compiler = ChunkCompiler()
        first = compiler.compile(pager_template, PAGE)
        second = compiler.compile(pager_template, PAGE)
        assert first == second

    def test_dump_tree(self, pager_template) -> None:
        dumped = dump_tree(compile_chunks(pager_template, PAGE))
        assert dumped.splitlines() == [
            "Group",
            "  Group #scope_0_signal_page",
            "    Literal '<p data-bmr=\"scope_0_signal_page\">Current Page '",
            "    Dynamic 'page()' #scope_0_signal_page",
            "    Literal '</p>'",
            "anchor scope_0_signal_page scope=0 kind=signal binding=page reads=['page'] "
            "handlers=[] template='Current Page {page()}'",
        ]

    @given(template=markup_trees)
    @settings(max_examples=150)
    def test_round_trip_determinism(self, template) -> None:
        reactivity = Reactivity.from_signals(NAMES[:2])
        first = compile_chunks(template, reactivity)
        second = compile_chunks(template, reactivity)
        assert first == second
        assert dump_tree(first) == dump_tree(second)
        assert len(set(first.anchor_ids)) == len(first.anchor_ids)

    @given(template=markup_trees)
    @settings(max_examples=150)
    def test_no_reactivity_means_no_anchors(self, template) -> None:
        tree = compile_chunks(template)
        assert tree.anchors == ()
        assert "data-bmr" not in render_sync(tree.root)

    @given(template=markup_trees)
    @settings(max_examples=150)
    def test_adjacent_literals_are_merged(self, template) -> None:
        tree = compile_chunks(template, Reactivity.from_signals(NAMES[:2]))

        def check(group: Group) -> None:
            for left, right in zip(group.children, group.children[1:]):
                assert not (isinstance(left, Literal) and isinstance(right, Literal))
            for child in group.children:
                if isinstance(child, Group):
                    check(child)

        check(tree.root)
