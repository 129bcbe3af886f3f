"""Templates rendering strings from a context, and their loaders."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from zkcore.style import NullStyler, Styler


class Template(ABC):
    """Produces a string from a given context."""

    @abstractmethod
    def styler(self) -> Styler:
        """Styler used to format the template content."""

    @abstractmethod
    def render(self, context: Any) -> str:
        """Render the template with the given variable context."""


class TemplateFunc(Template):
    """Adapter using a plain function as a Template."""

    def __init__(self, func: Callable[[Any], str]) -> None:
        self._func = func

    def styler(self) -> Styler:
        return NullStyler()

    def render(self, context: Any) -> str:
        return self._func(context)


class NullTemplate(Template):
    """Template always rendering an empty string."""

    def styler(self) -> Styler:
        return NullStyler()

    def render(self, context: Any) -> str:
        return ""


class TemplateLoader(ABC):
    """Creates Template instances from strings or files."""

    @abstractmethod
    def load_template(self, template: str) -> Template:
        """Create a Template from a template string."""

    @abstractmethod
    def load_template_at(self, path: str) -> Template:
        """Create a Template from the file at path, possibly relative to template dirs."""


class NullTemplateLoader(TemplateLoader):
    """Loader always returning a NullTemplate."""

    def load_template(self, template: str) -> Template:
        return NullTemplate()

    def load_template_at(self, path: str) -> Template:
        return NullTemplate()


TemplateLoaderFactory = Callable[[str], TemplateLoader]


class LazyString:
    """String computed on first use, then cached."""

    def __init__(self, render: Callable[[], str]) -> None:
        self._render = render
        self._value: str | None = None

    def __str__(self) -> str:
        if self._value is None:
            self._value = self._render()
        return self._value

    def __repr__(self) -> str:
        return f"LazyString({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (str, LazyString)):
            return str(self) == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(str(self))