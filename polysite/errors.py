from __future__ import annotations


class NotFoundError(LookupError):
    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind} not found: {name}")
        self.kind = kind
        self.name = name


class LayoutNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        super().__init__("Layout", name)


class TemplateNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        super().__init__("Template", name)
