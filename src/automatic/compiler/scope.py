"""
autoMATic Scope Arena
=====================

Lexical scopes are stored in a single arena (ScopeTable) and referred to
by integer id. Scope 0 is always the global scope. Each function gets a
child of the global scope holding its formals and top-level locals, and
every nested block gets a child of the scope it appears in.

The analyzer fills the arena; the typed tree keeps the ids of the scopes
its blocks and functions belong to, and the code generator walks the
same arena to find which stack slot a name refers to.

Example
-------
>>> from automatic.compiler.types import INT, FLOAT
>>> table = ScopeTable()
>>> table.declare(GLOBAL_SCOPE, "x", INT)
>>> inner = table.new_scope(GLOBAL_SCOPE)
>>> table.declare(inner, "x", FLOAT)
>>> table.lookup(inner, "x")
Type(base=<BaseType.FLOAT: 3>, element=None, rows=0, cols=0)
>>> table.resolve(GLOBAL_SCOPE, "x")[0]
0
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional

from automatic.compiler.types import Type


GLOBAL_SCOPE = 0


@dataclass
class Scope:
    """
    One lexical scope.

    Attributes:
        id: Index of this scope in its ScopeTable
        parent: Id of the enclosing scope (None for the global scope)
        symbols: Names declared directly in this scope, in declaration order
    """
    id: int
    parent: Optional[int]
    symbols: dict[str, Type] = field(default_factory=dict)


class ScopeTable:
    """
    Arena owning every scope of one compilation.

    Scopes are never removed, so ids stay valid for the lifetime of the
    table. Lookups walk from a scope to the global scope and the first
    hit wins, which is what makes inner declarations shadow outer ones.
    """

    def __init__(self):
        self._scopes: list[Scope] = [Scope(GLOBAL_SCOPE, None)]

    def __len__(self) -> int:
        return len(self._scopes)

    def __getitem__(self, scope_id: int) -> Scope:
        return self._scopes[scope_id]

    def new_scope(self, parent: int) -> int:
        """Create a child of PARENT and return its id."""
        scope_id = len(self._scopes)
        self._scopes.append(Scope(scope_id, parent))
        return scope_id

    def declare(self, scope_id: int, name: str, var_type: Type) -> None:
        """
        Bind NAME in the given scope.

        Raises:
            KeyError: If NAME is already declared in that same scope
        """
        symbols = self._scopes[scope_id].symbols
        if name in symbols:
            raise KeyError(name)
        symbols[name] = var_type

    def is_declared_in(self, scope_id: int, name: str) -> bool:
        return name in self._scopes[scope_id].symbols

    def chain(self, scope_id: int) -> Iterator[int]:
        """Yield scope ids from SCOPE_ID outward to the global scope."""
        current: Optional[int] = scope_id
        while current is not None:
            yield current
            current = self._scopes[current].parent

    def resolve(self, scope_id: int, name: str) -> Optional[tuple[int, Type]]:
        """
        Find the innermost declaration of NAME visible from SCOPE_ID.

        Returns:
            Tuple of (declaring scope id, type), or None if not visible
        """
        for current in self.chain(scope_id):
            symbols = self._scopes[current].symbols
            if name in symbols:
                return current, symbols[name]
        return None

    def lookup(self, scope_id: int, name: str) -> Optional[Type]:
        """Return the type of NAME as seen from SCOPE_ID, or None."""
        found = self.resolve(scope_id, name)
        return found[1] if found else None

    def visible_names(self, scope_id: int) -> list[str]:
        """Return every name visible from SCOPE_ID, innermost first."""
        names = []
        for current in self.chain(scope_id):
            for name in self._scopes[current].symbols:
                if name not in names:
                    names.append(name)
        return names
