"""
Record-level transforms: projection, grouping into columnar form and the inverse.

A record is a flat mapping ``field -> scalar``. Grouping collapses records that
share the same grouping-key values into one ``Group`` whose non-key fields are
parallel lists aligned by member index:

    rows = [
        {"city": "New York", "age": 25, "name": "John"},
        {"city": "San Francisco", "age": 30, "name": "Jane"},
        {"city": "New York", "age": 25, "name": "Bob"},
    ]
    [g.to_dict() for g in group(rows, ["city", "age"])]
    # ->
    [{'city': 'New York', 'age': 25, 'name': ['John', 'Bob']},
     {'city': 'San Francisco', 'age': 30, 'name': ['Jane']}]

``ungroup`` expands the columnar groups back into one record per member.
"""

import logging
from collections.abc import Iterable as IterableABC, Mapping as MappingABC
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from .errors import InconsistentGroup, InvalidInput

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]


def _validate_key_fields(key_fields: Sequence[str]) -> List[str]:
    if isinstance(key_fields, (str, bytes, MappingABC)) or not isinstance(key_fields, IterableABC):
        raise InvalidInput("key_fields must be a non-empty list of field names")
    key_fields = list(key_fields)
    if len(key_fields) == 0:
        raise InvalidInput("key_fields must be a non-empty list of field names")
    for name in key_fields:
        if not isinstance(name, str):
            raise InvalidInput(f"key field {name!r} is not a string")
    return key_fields


def _key_part(value: Any) -> Tuple[bool, Any]:
    # True == 1 == 1.0 share a hash; keep bools apart from numbers
    return (type(value) is bool, value)


@dataclass
class Group:
    """
    One partition of the input records in columnar form.

    Attributes:
        keys (Dict[str, Any]): grouping-key values, one scalar per key field.
        columns (Dict[str, List[Any]]): one list per non-key field, aligned by member index.

    All columns hold exactly ``size`` values.
    """
    keys: Dict[str, Any]
    columns: Dict[str, List[Any]] = field(default_factory=dict)
    size: int = 0

    @property
    def key(self) -> Tuple[Any, ...]:
        return tuple(self.keys.values())

    def column(self, name: str) -> List[Any]:
        return self.columns[name]

    def append(self, record: Record) -> None:
        """Add one member; its non-key field set must match the group's."""
        values = {k: v for k, v in record.items() if k not in self.keys}
        if self.size == 0 and not self.columns:
            self.columns = {k: [v] for k, v in values.items()}
            self.size = 1
            return

        if set(values) != set(self.columns):
            missing = sorted(set(self.columns) - set(values))
            extra = sorted(set(values) - set(self.columns))
            raise InconsistentGroup(
                f"Record in group {self.keys} has inconsistent fields "
                f"(missing={missing}, unexpected={extra})"
            )
        for name, column in self.columns.items():
            column.append(values[name])
        self.size += 1

    def to_dict(self) -> Dict[str, Any]:
        """Flat columnar mapping: key scalars followed by the value lists."""
        out = dict(self.keys)
        out.update({name: list(values) for name, values in self.columns.items()})
        return out

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], key_fields: Sequence[str]) -> "Group":
        """Build a group from a columnar mapping such as ``Group.to_dict()`` output."""
        missing = [k for k in key_fields if k not in mapping]
        if missing:
            raise InconsistentGroup(f"Grouped entry is missing key fields {missing}")
        keys = {k: mapping[k] for k in key_fields}
        columns = {k: list(v) for k, v in mapping.items() if k not in keys}
        lengths = {name: len(values) for name, values in columns.items()}
        if len(set(lengths.values())) > 1:
            raise InconsistentGroup(f"Columns of group {keys} have unequal lengths: {lengths}")
        size = next(iter(lengths.values()), 0)
        return cls(keys=keys, columns=columns, size=size)


def remove_extra_properties(records: Iterable[Record], allowed_fields: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Keep only the allowed fields of every record.

    Parameters:
        records: input records, left untouched.
        allowed_fields: field names to retain. Names absent from a record are simply not emitted.

    Returns:
        List[Dict[str, Any]]: new records, same length and order as the input.
    """
    allowed = set(allowed_fields)
    return [{k: v for k, v in record.items() if k in allowed} for record in records]


def group(records: Iterable[Record], key_fields: Sequence[str]) -> List[Group]:
    """
    Partition records by the values of ``key_fields``.

    Records lacking any key field are skipped. The composite key is the tuple of
    the typed key values, so ``1`` and ``"1"`` end up in different groups, as do
    ``True`` and ``1``. Numbers equal under ``==`` (``1`` and ``1.0``) share a group.
    Groups are returned in order of first occurrence.

    Raises:
        InvalidInput: if ``key_fields`` is empty or not a list of names.
        InconsistentGroup: if members of one group carry different non-key fields.
    """
    key_fields = _validate_key_fields(key_fields)
    groups: Dict[Tuple[Any, ...], Group] = {}
    n_skipped = 0

    for record in records:
        if not all(k in record for k in key_fields):
            n_skipped += 1
            continue
        key = tuple(_key_part(record[k]) for k in key_fields)
        entry = groups.get(key)
        if entry is None:
            entry = Group(keys={k: record[k] for k in key_fields})
            groups[key] = entry
        entry.append(record)

    if n_skipped:
        logger.debug(f"group: skipped {n_skipped} record(s) missing one of {key_fields}")
    return list(groups.values())


def ungroup(groups: Iterable[Union[Group, Mapping[str, Any]]], key_fields: Sequence[str]) -> List[Dict[str, Any]]:
    """
    Expand columnar groups back into flat records.

    Each group yields ``size`` records carrying the key values and the i-th
    element of every column. Plain mappings are accepted and validated through
    ``Group.from_mapping``.
    """
    key_fields = _validate_key_fields(key_fields)
    out: List[Dict[str, Any]] = []
    for entry in groups:
        if not isinstance(entry, Group):
            entry = Group.from_mapping(entry, key_fields)
        for i in range(entry.size):
            row = dict(entry.keys)
            for name, values in entry.columns.items():
                row[name] = values[i]
            out.append(row)
    return out
