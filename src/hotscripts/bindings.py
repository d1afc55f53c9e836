"""Bindings assembled before each script run.

A bindings supplier is any callable taking ``(script, builder)``. Suppliers
run in order; a later supplier overwrites a name set by an earlier one.
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hotscripts.environment.script import Script


class BindingsBuilder:
    """Chainable builder over a bindings dict."""

    def __init__(self, bindings: dict[str, Any] | None = None):
        self._bindings = bindings if bindings is not None else {}

    def put(self, name: str, value: Any) -> "BindingsBuilder":
        self._bindings[name] = value
        return self

    def put_all(self, values: Mapping[str, Any]) -> "BindingsBuilder":
        self._bindings.update(values)
        return self

    def apply(self, action: Callable[[dict[str, Any]], Any]) -> "BindingsBuilder":
        action(self._bindings)
        return self

    def __contains__(self, name: object) -> bool:
        return name in self._bindings

    def build(self) -> dict[str, Any]:
        return self._bindings


BindingsSupplier = Callable[["Script", BindingsBuilder], Any]


def single_binding(name: str, value: Any) -> BindingsSupplier:
    """Supplier contributing one fixed binding."""

    def supply(script: "Script", builder: BindingsBuilder) -> None:
        builder.put(name, value)

    return supply


def from_mapping(values: Mapping[str, Any]) -> BindingsSupplier:
    """Supplier contributing every entry of a mapping."""
    snapshot = dict(values)

    def supply(script: "Script", builder: BindingsBuilder) -> None:
        builder.put_all(snapshot)

    return supply
