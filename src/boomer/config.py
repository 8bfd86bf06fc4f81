"""Compiler and renderer configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CompilerConfig:
    """Options shared by the builder, resolver, chunk compiler and renderer.

    Attributes:
        anchor_attribute: Attribute written on anchored elements so the client
            runtime can locate them (``<p data-bmr="scope_0_signal_page">``).
        encoding: Text encoding used when writing chunks to a sink.
        autoescape: Default HTML escaping for expressions that do not say.
        strict: Raise UnresolvedSignalError instead of degrading statements.
        merge_literals: Merge adjacent Literal chunks at compile time.

    Example:
            >>> config = CompilerConfig(anchor_attribute="data-anchor", strict=True)
            >>> compile_component(source, config=config)

    """

    anchor_attribute: str = "data-bmr"
    encoding: str = "utf-8"
    autoescape: bool = True
    strict: bool = False
    merge_literals: bool = True


DEFAULT_CONFIG = CompilerConfig()
