"""
Named parameter binding for prepared statements.

Statements use ``@name`` placeholders. Parameter keys are normalized to the
``@`` form, ``AnsiString`` values bind as fixed-charset ``VARCHAR`` of an
explicit length, and ``None`` binds an explicit NULL instead of being dropped.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import sqlalchemy as sa

logger = logging.getLogger(__name__)

__all__ = ['AnsiString', 'BoundParameter', 'Statement', 'configure', 'to_ansi']

# string literals are matched first so placeholders inside them are skipped
_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|(?<![@\w])@(\w+)")
_COLON_NAME_RE = re.compile(r'(?<![:\w\\]):(?=\w)')


@dataclass(frozen=True)
class AnsiString:
    """Non-unicode string bound as VARCHAR of ``size`` bytes.

    A negative size binds an unbounded VARCHAR.
    """
    value: str | None
    size: int = -1


def to_ansi(value: str | None, size: int = -1) -> AnsiString:
    return AnsiString(value, size)


@dataclass(frozen=True)
class BoundParameter:
    name: str
    value: Any
    type_: sa.types.TypeEngine | None = None

    @property
    def key(self) -> str:
        """Name without the ``@`` prefix, as SQLAlchemy binds it"""
        return self.name[1:]

    def to_bindparam(self) -> sa.BindParameter:
        if self.type_ is not None:
            return sa.bindparam(self.key, self.value, type_=self.type_)
        return sa.bindparam(self.key, self.value)


@dataclass
class Statement:
    """SQL text plus its bound parameters, keyed by ``@name``."""
    sql: str
    parameters: dict[str, BoundParameter] = field(default_factory=dict)

    def _render(self) -> tuple[str, set[str]]:
        used: set[str] = set()

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name is None or f'@{name}' not in self.parameters:
                return match.group(0)
            used.add(f'@{name}')
            return f':{name}'

        sql = _COLON_NAME_RE.sub(r'\\:', self.sql)
        return _PLACEHOLDER_RE.sub(substitute, sql), used

    def render(self) -> str:
        """SQL with bound ``@name`` placeholders rewritten to ``:name``.

        Existing ``:word`` tokens are escaped so SQLAlchemy leaves them alone,
        and ``@`` names with no bound parameter (local variables, ``@@`` globals)
        are kept verbatim.
        """
        return self._render()[0]

    def to_clause(self) -> sa.TextClause:
        """Text clause binding the parameters the SQL refers to.

        Parameters the SQL never mentions are dropped.
        """
        sql, used = self._render()
        unused = [name for name in self.parameters if name not in used]
        if unused:
            logger.debug(f'Ignoring parameters not referenced by the statement: {unused}')
        clause = sa.text(sql)
        if used:
            clause = clause.bindparams(*[p.to_bindparam() for name, p in self.parameters.items()
                                         if name in used])
        return clause


def _normalize_name(name: str) -> str:
    return name if name.startswith('@') else f'@{name}'


def _bind(name: str, value: Any) -> BoundParameter:
    if isinstance(value, AnsiString):
        type_ = sa.VARCHAR(value.size) if value.size >= 0 else sa.VARCHAR()
        return BoundParameter(name, value.value, type_)
    if value is None:
        return BoundParameter(name, None, sa.types.NullType())
    return BoundParameter(name, value)


def configure(statement: Statement, parameters: dict[str, Any] | None) -> Statement:
    """Add parameters to a statement and return it.

    ``None`` parameters is treated as an empty mapping.
    """
    if statement is None:
        raise ValueError('statement is required')

    for name, value in (parameters or {}).items():
        bound = _bind(_normalize_name(name), value)
        statement.parameters[bound.name] = bound

    logger.debug(f'Configured statement with {len(statement.parameters)} parameters')
    return statement
