"""Pydantic models for a rendered chat page and tree queries over them.

A ``PageSnapshot`` is what a browser-side collector serialises: the page URL,
its document title and the element tree below ``<body>``. Queries walk the
tree in document order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    type ElementPredicate = Callable[[PageElement], bool]


class PageBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PageElement(PageBaseModel):
    tag: str = "div"
    id: str | None = None
    classes: list[str] = Field(default_factory=list)
    attributes: dict[str, str] = Field(default_factory=dict)
    text: str = ""
    hidden: bool = False
    focused: bool = False
    children: list[PageElement] = Field(default_factory=list["PageElement"])

    def has_class(self, *names: str) -> bool:
        return all(name in self.classes for name in names)

    def attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def iter_descendants(self) -> Iterator[PageElement]:
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def find_all(self, predicate: ElementPredicate) -> list[PageElement]:
        return [element for element in self.iter_descendants() if predicate(element)]

    def find_first(self, predicate: ElementPredicate) -> PageElement | None:
        return next((element for element in self.iter_descendants() if predicate(element)), None)

    def select(self, *steps: ElementPredicate) -> PageElement | None:
        """First element reached by descending through ``steps`` (like ``a .b``)."""

        current: PageElement | None = self
        for step in steps:
            if current is None:
                return None
            current = current.find_first(step)
        return current

    def contains(self, predicate: ElementPredicate) -> bool:
        return self.find_first(predicate) is not None

    def inner_text(self) -> str:
        parts = [self.text] if self.text else []
        parts.extend(text for child in self.children if (text := child.inner_text()))
        return "\n".join(parts)

    def is_editing(self) -> bool:
        """Whether a focused textarea sits inside this element."""

        return self.contains(lambda element: element.tag == "textarea" and element.focused)


class PageSnapshot(PageBaseModel):
    url: str
    title: str | None = None
    body: PageElement = Field(default_factory=lambda: PageElement(tag="body"))

    def find_all(self, predicate: ElementPredicate) -> list[PageElement]:
        return self.body.find_all(predicate)

    def find_first(self, predicate: ElementPredicate) -> PageElement | None:
        return self.body.find_first(predicate)


def tag(name: str) -> ElementPredicate:
    return lambda element: element.tag == name


def css_class(*names: str) -> ElementPredicate:
    return lambda element: element.has_class(*names)


def attribute(name: str, value: str | None = None) -> ElementPredicate:
    if value is None:
        return lambda element: name in element.attributes
    return lambda element: element.attributes.get(name) == value


def element_id(value: str) -> ElementPredicate:
    return lambda element: element.id == value


def any_of(*predicates: ElementPredicate) -> ElementPredicate:
    return lambda element: any(predicate(element) for predicate in predicates)
