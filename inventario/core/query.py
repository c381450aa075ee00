"""
Constructor de consultas para los listados: filtro, orden, selección de campos y paginación.

Los parámetros llegan tal cual del query string:

    ?estado=Bodega&valorCompra[gte]=500&sort=-createdAt,marca&fields=idEquipo,serial
    &pagina=2&limite=5&search=dell

Los pasos se aplican siempre en el mismo orden (filter -> sort -> limit_fields ->
paginate) y el conteo total reutiliza exactamente las condiciones del filtro.
"""
import math
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Query

PAGE_KEYS = ("page", "pagina")
LIMIT_KEYS = ("limit", "limite")
SEARCH_KEYS = ("search", "buscar")
RESERVED_KEYS = frozenset(PAGE_KEYS + LIMIT_KEYS + SEARCH_KEYS + ("sort", "fields"))

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

_OPERATOR = re.compile(r"^(?P<field>[A-Za-z_][\w.]*)\[(?P<op>gte|gt|lte|lt)\]$")
_TRUE = ("true", "1", "si", "sí", "yes")
_FALSE = ("false", "0", "no")


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _first_value(params: Mapping[str, str], keys: Sequence[str]) -> Optional[str]:
    """Primer valor no vacío entre los alias de un parámetro (page/pagina, limit/limite)."""
    for key in keys:
        value = params.get(key)
        if value is not None and str(value).strip() != "":
            return str(value).strip()
    return None


def _positive_int(name: str, raw: Optional[str], default: int, maximum: Optional[int] = None) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise _bad_request(f"El parámetro '{name}' debe ser un número entero")
    if value < 1 or (maximum is not None and value > maximum):
        rango = f"entre 1 y {maximum}" if maximum is not None else "mayor o igual a 1"
        raise _bad_request(f"El parámetro '{name}' debe estar {rango}")
    return value


class QueryBuilder:
    """
    Envoltorio encadenable sobre una Query de SQLAlchemy.

    Args:
        query: consulta base, p. ej. db.query(Equipo)
        params: parámetros del query string
        fields: nombre público (camelCase) -> columna filtrable y ordenable
        search_fields: columnas del término libre (search/buscar)
        default_sort: orden por defecto, con "-" para descendente
        tiebreaker: columna de desempate; sigue la dirección de la primera clave
        projectable: nombres públicos admitidos en ?fields=
        reserved: claves extra que gestiona el llamador y no se filtran
    """

    def __init__(
        self,
        query: Query,
        params: Mapping[str, str],
        fields: Dict[str, Any],
        search_fields: Iterable[Any] = (),
        default_sort: str = "-createdAt",
        tiebreaker: Any = None,
        projectable: Optional[Iterable[str]] = None,
        reserved: Iterable[str] = (),
    ):
        self.base_query = query
        self.query = query
        self.params = params
        self.fields = fields
        self.search_fields = list(search_fields)
        self.default_sort = default_sort
        self.tiebreaker = tiebreaker
        self.projectable = set(projectable) if projectable is not None else set(fields)
        self.reserved = RESERVED_KEYS | set(reserved)
        self.filter_conditions: List[Any] = []
        self.selected: Optional[List[str]] = None
        self.page = DEFAULT_PAGE
        self.limit = DEFAULT_LIMIT

    def _column(self, name: str, purpose: str):
        column = self.fields.get(name)
        if column is None:
            raise _bad_request(f"Campo no válido para {purpose}: '{name}'")
        return column

    @staticmethod
    def coerce(name: str, column: Any, raw: str) -> Any:
        """Convierte el texto del query string al tipo Python de la columna."""
        try:
            python_type = column.expression.type.python_type
        except NotImplementedError:
            python_type = str
        try:
            if python_type is bool:
                lowered = raw.strip().lower()
                if lowered in _TRUE:
                    return True
                if lowered in _FALSE:
                    return False
                raise ValueError(raw)
            if python_type is datetime:
                return datetime.fromisoformat(raw)
            if python_type is date:
                return date.fromisoformat(raw)
            if python_type is Decimal:
                return Decimal(raw)
            if python_type is int:
                return int(raw)
            if python_type is UUID:
                return UUID(raw)
        except (ValueError, ArithmeticError):
            raise _bad_request(f"Valor no válido para '{name}': {raw}")
        return raw

    def add_condition(self, condition: Any) -> "QueryBuilder":
        """Condición fija del llamador; cuenta tanto para la página como para el total."""
        self.filter_conditions.append(condition)
        self.query = self.query.filter(condition)
        return self

    def filter(self) -> "QueryBuilder":
        conditions = []
        for key, raw in self.params.items():
            if key in self.reserved:
                continue
            m = _OPERATOR.match(key)
            if m:
                name, op = m.group("field"), m.group("op")
                column = self._column(name, "filtrar")
                value = self.coerce(name, column, raw)
                if op == "gte":
                    conditions.append(column >= value)
                elif op == "gt":
                    conditions.append(column > value)
                elif op == "lte":
                    conditions.append(column <= value)
                else:
                    conditions.append(column < value)
            else:
                column = self._column(key, "filtrar")
                conditions.append(column == self.coerce(key, column, raw))

        term = _first_value(self.params, SEARCH_KEYS)
        if term and self.search_fields:
            pattern = f"%{escape_like(term)}%"
            conditions.append(or_(*[c.ilike(pattern, escape="\\") for c in self.search_fields]))

        for condition in conditions:
            self.add_condition(condition)
        return self

    def sort(self) -> "QueryBuilder":
        raw = self.params.get("sort") or self.default_sort
        keys = [k.strip() for k in raw.split(",") if k.strip()]
        order = []
        for key in keys:
            descending = key.startswith("-")
            column = self._column(key.lstrip("-"), "ordenar")
            order.append(column.desc() if descending else column.asc())
        if self.tiebreaker is not None:
            first_desc = bool(keys) and keys[0].startswith("-")
            order.append(self.tiebreaker.desc() if first_desc else self.tiebreaker.asc())
        self.query = self.query.order_by(*order)
        return self

    def limit_fields(self) -> "QueryBuilder":
        raw = self.params.get("fields")
        if not raw:
            self.selected = None
            return self
        names = [n.strip() for n in raw.split(",") if n.strip()]
        unknown = [n for n in names if n not in self.projectable]
        if unknown:
            raise _bad_request(f"Campos no válidos en 'fields': {', '.join(unknown)}")
        self.selected = ["id"] + [n for n in names if n != "id"]
        return self

    def paginate(self) -> "QueryBuilder":
        self.page = _positive_int("pagina", _first_value(self.params, PAGE_KEYS), DEFAULT_PAGE)
        self.limit = _positive_int(
            "limite", _first_value(self.params, LIMIT_KEYS), DEFAULT_LIMIT, MAX_LIMIT
        )
        self.query = self.query.offset((self.page - 1) * self.limit).limit(self.limit)
        return self

    def all(self) -> list:
        return self.query.all()

    def count(self) -> int:
        return self.base_query.filter(*self.filter_conditions).order_by(None).count()

    def project(self, item: Dict[str, Any]) -> Dict[str, Any]:
        if self.selected is None:
            return item
        return {k: item[k] for k in self.selected if k in item}

    def pagination(self, total: int, total_key: Optional[str] = None) -> Dict[str, Any]:
        total_paginas = math.ceil(total / self.limit) if total else 0
        out: Dict[str, Any] = {
            "pagina": self.page,
            "limite": self.limit,
            "totalPaginas": total_paginas,
            "total": total,
            "tieneAnterior": self.page > 1,
            "tieneSiguiente": self.page < total_paginas,
        }
        if total_key:
            out[total_key] = total
        return out
