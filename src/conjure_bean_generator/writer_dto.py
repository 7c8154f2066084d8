"""Value objects that carry the resolved model into the renderers."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import override


@dataclass(frozen=True)
class PythonField:
    """One member of a bean.

    Attributes:
        attribute_name: The name of the Python attribute, before sanitization.
        wire_name: The name of the field in the serialized form.
        type_expr: The runtime type expression that is recorded in the field registry
            (e.g. "OptionalTypeWrapper[str]").
        declared_type_expr: The type annotation used in signatures (e.g. "Optional[str]").
        docs: The documentation of the field, if any.
        is_optional: Whether the field may be absent.
    """

    attribute_name: str
    wire_name: str
    type_expr: str
    declared_type_expr: str
    docs: str | None = None
    is_optional: bool = False

    @property
    def parameter_sort_key(self) -> int:
        """Sort key for constructor parameters: required fields first, optional fields last.

        Only meaningful together with a stable sort, which keeps the declared order within a tier.
        """
        return 1 if self.is_optional else 0


@dataclass(frozen=True, order=True)
class NamedImport:
    """A symbol that is imported from a module, optionally under an alias."""

    name: str
    alias: str | None = None

    @override
    def __str__(self) -> str:
        if self.alias:
            return f"{self.name} as {self.alias}"
        return self.name


@dataclass(frozen=True)
class PythonImport:
    """An import of a module, or of named symbols from a module.

    An import without named imports renders as `import module`.
    """

    module_specifier: str
    named_imports: frozenset[NamedImport] = field(default_factory=frozenset)

    @classmethod
    def of(cls, module_specifier: str, *names: str) -> PythonImport:
        """Create an import of the given names from a module."""
        return cls(module_specifier, frozenset(NamedImport(name) for name in names))

    @property
    def is_module_import(self) -> bool:
        """Whether this imports the module itself instead of symbols from it."""
        return not self.named_imports

    @override
    def __str__(self) -> str:
        if self.is_module_import:
            return f"import {self.module_specifier}"

        names = ", ".join(str(named_import) for named_import in sorted(self.named_imports))
        return f"from {self.module_specifier} import {names}"


class ImportSet:
    """A mutable collection of imports, keyed by module specifier.

    Adding an import for a module that is already known unions the named imports. A bare
    `import module` is kept next to the named imports of the same module.
    Iteration and rendering are ordered lexicographically, independent of insertion order.
    """

    def __init__(self, imports: Iterable[PythonImport] = ()) -> None:
        self._module_imports: set[str] = set()
        self._modules: dict[str, set[NamedImport]] = {}
        for python_import in imports:
            self.add(python_import)

    def add(self, python_import: PythonImport) -> None:
        """Add an import, merging its named imports with those of the same module."""
        if python_import.is_module_import:
            self._module_imports.add(python_import.module_specifier)
        else:
            self._modules.setdefault(python_import.module_specifier, set()).update(python_import.named_imports)

    def update(self, other: ImportSet | Iterable[PythonImport]) -> None:
        """Add all imports of another import set."""
        for python_import in other:
            self.add(python_import)

    def __or__(self, other: ImportSet) -> ImportSet:
        merged = ImportSet(self)
        merged.update(other)
        return merged

    def __iter__(self) -> Iterator[PythonImport]:
        for module_specifier in sorted(self._module_imports.union(self._modules)):
            if module_specifier in self._module_imports:
                yield PythonImport(module_specifier)
            if module_specifier in self._modules:
                yield PythonImport(module_specifier, frozenset(self._modules[module_specifier]))

    def __len__(self) -> int:
        return len(self._module_imports) + len(self._modules)

    def __contains__(self, module_specifier: object) -> bool:
        return module_specifier in self._module_imports or module_specifier in self._modules

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImportSet):
            return NotImplemented
        return self._module_imports == other._module_imports and self._modules == other._modules

    def names_for(self, module_specifier: str) -> set[str]:
        """The names imported from a module, empty if only the module itself is imported or it is unknown."""
        return {named_import.name for named_import in self._modules.get(module_specifier, set())}

    def lines(self) -> list[str]:
        """Render the import lines.

        Module imports come first, followed by imports of named symbols. Both groups are sorted by
        module specifier, and the named symbols are sorted by name.

        Returns:
            list[str]: The import lines.
        """
        imports = list(self)
        module_imports = [str(i) for i in imports if i.is_module_import]
        named_imports = [str(i) for i in imports if not i.is_module_import]
        return module_imports + named_imports

    @override
    def __repr__(self) -> str:
        return f"ImportSet({self.lines()!r})"


@dataclass(frozen=True)
class PythonPackage:
    """A dotted Python package path, e.g. 'generated.product'."""

    name: str

    def __post_init__(self):
        if not self.name or any(not part for part in self.name.split(".")):
            raise ValueError(f"Invalid package name '{self.name}'.")

    @property
    def parts(self) -> list[str]:
        """The segments of the package path."""
        return self.name.split(".")

    @property
    def module_name(self) -> str:
        """The last segment of the package path."""
        return self.parts[-1]

    def child(self, name: str) -> PythonPackage:
        """The package one level below this one."""
        return PythonPackage(f"{self.name}.{name}")

    @override
    def __str__(self) -> str:
        return self.name
