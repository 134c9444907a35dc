"""Data models shared by the schema parser and the normalization engine."""

import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ARROW_PATTERN = re.compile(r'->|→')
TOKEN_PATTERN = re.compile(r'[A-Za-z0-9_]+')
SHORTHAND_PATTERN = re.compile(r'^\s*([A-Za-z0-9_]+)\s*\(([^)]*)\)\s*$')


def _unique(items):
    """ Drops duplicates while keeping first-occurrence order. """
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _clean_side(side):
    """ Normalises one FD side: a list/tuple/set of names or a 'A, B' string. """
    if isinstance(side, str):
        return TOKEN_PATTERN.findall(side)
    if isinstance(side, (list, tuple, set, frozenset)):
        cleaned = []
        for attr in side:
            if isinstance(attr, str) and attr.strip():
                cleaned.append(attr.strip())
        return cleaned
    return []


class FunctionalDependency(BaseModel):
    """ LHS -> RHS, both sides non-empty and free of duplicates. """

    model_config = ConfigDict(frozen=True)

    lhs: Tuple[str, ...]
    rhs: Tuple[str, ...]

    @field_validator('lhs', 'rhs', mode='before')
    @classmethod
    def _dedupe_side(cls, value):
        cleaned = tuple(_unique(_clean_side(value)))
        if not cleaned:
            raise ValueError("FD sides must not be empty")
        return cleaned

    @property
    def lhs_set(self):
        return frozenset(self.lhs)

    @property
    def rhs_set(self):
        return frozenset(self.rhs)

    @property
    def attributes(self):
        return _unique(self.lhs + self.rhs)

    @property
    def is_trivial(self):
        return self.rhs_set.issubset(self.lhs_set)

    def to_dict(self):
        return {"left": list(self.lhs), "right": list(self.rhs)}

    def __str__(self):
        return f"{', '.join(self.lhs)} -> {', '.join(self.rhs)}"

    @classmethod
    def from_record(cls, record):
        """
        Builds an FD from any of the accepted record shapes.

        Accepted: an existing FunctionalDependency, a mapping keyed by
        left/right, lhs/rhs or determinants/dependents, a (lhs, rhs) pair,
        or an 'A, B -> C' string. Returns None for anything malformed.
        """
        if isinstance(record, cls):
            return record

        lhs = rhs = None
        if isinstance(record, dict):
            for left_key, right_key in (('left', 'right'), ('lhs', 'rhs'), ('determinants', 'dependents')):
                if left_key in record or right_key in record:
                    lhs, rhs = record.get(left_key), record.get(right_key)
                    break
        elif isinstance(record, str):
            parts = ARROW_PATTERN.split(record)
            if len(parts) == 2:
                lhs, rhs = parts
        elif isinstance(record, (list, tuple)) and len(record) == 2:
            lhs, rhs = record

        lhs, rhs = _clean_side(lhs), _clean_side(rhs)
        if not lhs or not rhs:
            return None
        return cls(lhs=lhs, rhs=rhs)


def normalize_fds(records):
    """ Converts raw FD records into FunctionalDependency objects, dropping malformed ones. """
    if not isinstance(records, (list, tuple)):
        return []
    fds = []
    for record in records:
        fd = FunctionalDependency.from_record(record)
        if fd is not None:
            fds.append(fd)
    return fds


class Relation(BaseModel):
    """ A named, ordered attribute list; algorithms treat the attributes as a set. """

    name: str = 'R'
    attributes: List[str] = Field(default_factory=list)
    reason: Optional[str] = None

    @field_validator('attributes', mode='before')
    @classmethod
    def _clean_attributes(cls, value):
        if not isinstance(value, (list, tuple)):
            return []
        return _unique(str(attr).strip() for attr in value if str(attr).strip())

    @property
    def attribute_set(self):
        return frozenset(self.attributes)

    def display(self):
        return f"{self.name}({', '.join(self.attributes)})"

    @classmethod
    def from_record(cls, record):
        """
        Accepts a Relation, a mapping with 'attributes' (or 'attrs'), or a
        'Name(a, b)' string. Attribute lists that are not sequences become empty.
        """
        if isinstance(record, cls):
            return record
        if isinstance(record, str):
            match = SHORTHAND_PATTERN.match(record)
            if match:
                return cls(name=match.group(1), attributes=TOKEN_PATTERN.findall(match.group(2)))
            return cls(name=record.split('(')[0].strip() or 'R', attributes=[])
        if isinstance(record, dict):
            attrs = record.get('attributes')
            if attrs is None:
                attrs = record.get('attrs')
            reason = record.get('reason')
            return cls(name=str(record.get('name') or 'R'), attributes=attrs,
                       reason=reason if isinstance(reason, str) else None)
        return cls(attributes=[])


def normalize_relations(records):
    if not isinstance(records, (list, tuple)):
        return []
    return [Relation.from_record(record) for record in records]


class ForeignKeyRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    table: str
    columns: List[str] = Field(default_factory=list, alias='cols')


class Column(BaseModel):
    """ A DDL column as recovered from CREATE TABLE text. """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str = ''
    is_pk: bool = Field(default=False, alias='isPK')
    is_fk: bool = Field(default=False, alias='isFK')
    fk_ref: Optional[ForeignKeyRef] = Field(default=None, alias='fkRef')


class Table(BaseModel):
    name: str
    columns: List[Column] = Field(default_factory=list)

    @property
    def column_names(self):
        return [col.name for col in self.columns]

    @property
    def primary_key(self):
        return [col.name for col in self.columns if col.is_pk]

    @property
    def non_key_columns(self):
        return [col.name for col in self.columns if not col.is_pk]


class Relationship(BaseModel):
    """ Directed child -> parent edge recovered from a foreign key. """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_table: str = Field(alias='from')
    to_table: str = Field(alias='to')
    fk_columns: Tuple[str, ...] = Field(default=(), alias='fkCols')
    ref_columns: Tuple[str, ...] = Field(default=(), alias='refCols')

    @property
    def identity(self):
        return (self.from_table, self.to_table, self.fk_columns, self.ref_columns)

    @property
    def name(self):
        return f"{','.join(self.fk_columns)} -> {','.join(self.ref_columns)}"

    def to_dict(self):
        payload = self.model_dump(by_alias=True)
        payload['fkCols'] = list(self.fk_columns)
        payload['refCols'] = list(self.ref_columns)
        payload['name'] = self.name
        return payload


class ParsedSchema(BaseModel):
    tables: Dict[str, Table] = Field(default_factory=dict)
    relationships: List[Relationship] = Field(default_factory=list)

    def to_payload(self):
        return {
            "tables": {
                name: [col.model_dump(by_alias=True) for col in table.columns]
                for name, table in self.tables.items()
            },
            "relationships": [rel.to_dict() for rel in self.relationships],
        }


class ParsedInput(BaseModel):
    relations: List[Relation] = Field(default_factory=list)
    fds: List[FunctionalDependency] = Field(default_factory=list)
