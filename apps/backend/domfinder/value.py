"""
Extraction result values.

`Value` is a tagged union over int, float, bool, string, array, object and
null. Results are built fresh for every extraction call and can be queried
with dotted paths:

    result.from_path("root.links.0")      # array element by index
    result.from_path("root.links.#")      # array length as an int value
    result.from_path("root.items.#.url")  # `url` of every item, misses dropped

Narrowing accessors (`as_str`, `as_int`, ...) return None when the value has
a different kind; they never coerce.
"""

import json
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional


class ValueKind(Enum):
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"


class Value:
    """A dynamically typed extraction result."""

    __slots__ = ('_kind', '_data')

    def __init__(self, kind: ValueKind, data: Any = None):
        self._kind = kind
        self._data = data

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def null(cls) -> 'Value':
        return cls(ValueKind.NULL)

    @classmethod
    def array(cls, items: Iterable['Value']) -> 'Value':
        return cls(ValueKind.ARRAY, list(items))

    @classmethod
    def object(cls, entries: Mapping[str, 'Value']) -> 'Value':
        return cls(ValueKind.OBJECT, dict(entries))

    @classmethod
    def of(cls, obj: Any) -> 'Value':
        """
        Convert plain Python data into a Value.

        Raises:
            TypeError: for objects with no Value counterpart
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.null()
        # bool first: it is a subclass of int
        if isinstance(obj, bool):
            return cls(ValueKind.BOOL, obj)
        if isinstance(obj, int):
            return cls(ValueKind.INT, obj)
        if isinstance(obj, float):
            return cls(ValueKind.FLOAT, obj)
        if isinstance(obj, str):
            return cls(ValueKind.STRING, obj)
        if isinstance(obj, (list, tuple)):
            return cls.array(cls.of(item) for item in obj)
        if isinstance(obj, Mapping):
            return cls.object({str(k): cls.of(v) for k, v in obj.items()})
        raise TypeError(f"cannot convert {type(obj).__name__} to Value")

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def kind(self) -> ValueKind:
        return self._kind

    @property
    def is_null(self) -> bool:
        return self._kind is ValueKind.NULL

    def is_empty(self) -> bool:
        """
        True for null, "", [], {}, 0 and 0.0.

        Used while extracting to decide whether a field is kept.
        """
        if self._kind is ValueKind.NULL:
            return True
        if self._kind in (ValueKind.STRING, ValueKind.ARRAY, ValueKind.OBJECT):
            return len(self._data) == 0
        if self._kind in (ValueKind.INT, ValueKind.FLOAT):
            return self._data == 0
        return False

    # ------------------------------------------------------------------
    # Path queries
    # ------------------------------------------------------------------

    def from_path(self, path: str) -> Optional['Value']:
        """
        Resolve a dotted path.

        Segments are object keys, array indexes or `#`. On an array, a final
        `#` gives the length; a `#` followed by more segments applies them to
        every element and collects the hits into an array. Any segment
        applied to a scalar or null yields None.
        """
        head, _, rest = path.partition('.')
        has_rest = '.' in path

        if self._kind is ValueKind.OBJECT:
            child = self._data.get(head)
            if child is None:
                return None
            return child.from_path(rest) if has_rest else child

        if self._kind is ValueKind.ARRAY:
            if head == '#':
                if not has_rest:
                    return Value(ValueKind.INT, len(self._data))
                hits = (item.from_path(rest) for item in self._data)
                return Value.array(hit for hit in hits if hit is not None)
            if not head.isdecimal():
                return None
            index = int(head)
            if index >= len(self._data):
                return None
            child = self._data[index]
            return child.from_path(rest) if has_rest else child

        return None

    get = from_path

    # ------------------------------------------------------------------
    # Narrowing
    # ------------------------------------------------------------------

    def as_str(self) -> Optional[str]:
        return self._data if self._kind is ValueKind.STRING else None

    def as_int(self) -> Optional[int]:
        return self._data if self._kind is ValueKind.INT else None

    def as_float(self) -> Optional[float]:
        return self._data if self._kind is ValueKind.FLOAT else None

    def as_bool(self) -> Optional[bool]:
        return self._data if self._kind is ValueKind.BOOL else None

    def as_list(self) -> Optional[List['Value']]:
        return self._data if self._kind is ValueKind.ARRAY else None

    def as_dict(self) -> Optional[Dict[str, 'Value']]:
        return self._data if self._kind is ValueKind.OBJECT else None

    def as_str_list(self) -> Optional[List[str]]:
        """All elements as strings, or None if any element is not a string."""
        return self._narrow_items(Value.as_str)

    def as_int_list(self) -> Optional[List[int]]:
        return self._narrow_items(Value.as_int)

    def as_float_list(self) -> Optional[List[float]]:
        return self._narrow_items(Value.as_float)

    def as_bool_list(self) -> Optional[List[bool]]:
        return self._narrow_items(Value.as_bool)

    def _narrow_items(self, narrow: Callable[['Value'], Any]) -> Optional[list]:
        if self._kind is not ValueKind.ARRAY:
            return None
        result = []
        for item in self._data:
            narrowed = narrow(item)
            if narrowed is None:
                return None
            result.append(narrowed)
        return result

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_python(self) -> Any:
        """Convert to plain Python data (dict, list, str, int, float, bool, None)."""
        if self._kind is ValueKind.ARRAY:
            return [item.to_python() for item in self._data]
        if self._kind is ValueKind.OBJECT:
            return {key: item.to_python() for key, item in self._data.items()}
        return self._data

    def to_json(self, **kwargs) -> str:
        """Serialize to JSON text; keyword arguments go to `json.dumps`."""
        kwargs.setdefault('ensure_ascii', False)
        return json.dumps(self.to_python(), **kwargs)

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self._kind is other._kind and self._data == other._data

    __hash__ = None

    def __repr__(self):
        if self._kind is ValueKind.NULL:
            return "Value.null()"
        return f"Value({self._kind.value}, {self._data!r})"
