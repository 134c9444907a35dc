"""
Best-effort extraction of relations, tables and functional dependencies from
free-form schema text.

Two input grammars are recognised:

* shorthand relations, one per line: ``Orders(order_id, customer, total)``,
  mixed with FD lines such as ``order_id -> customer, total``;
* SQL ``CREATE TABLE`` statements, from which foreign-key relationships and
  baseline FDs (primary key -> other columns, foreign key -> parent key) are
  derived.

Nothing in here raises on malformed content: lines and column definitions
that do not fit the grammar are skipped.
"""
import logging
import re

from .models import (ARROW_PATTERN, TOKEN_PATTERN, Column, ForeignKeyRef, FunctionalDependency,
                     ParsedInput, ParsedSchema, Relation, Relationship, Table)

logger = logging.getLogger(__name__)

RELATION_PATTERN = re.compile(r'^([A-Za-z0-9_]+)\s*\(\s*([A-Za-z0-9_,\s]+)\s*\)\s*$')
# Shorthand lines named like a table-level SQL constraint are DDL, not relations
SQL_CONSTRAINT_WORDS = {'PRIMARY', 'FOREIGN', 'UNIQUE', 'KEY', 'INDEX', 'CHECK', 'CONSTRAINT', 'REFERENCES'}

QUOTED_NAME = r'[`"\[]?([A-Za-z0-9_]+)[`"\]]?'
CREATE_TABLE_PATTERN = re.compile(
    r'CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?:[`"\[]?[A-Za-z0-9_]+[`"\]]?\.)?' + QUOTED_NAME + r'\s*\(',
    re.IGNORECASE)
TABLE_PK_PATTERN = re.compile(
    r'^(?:CONSTRAINT\s+' + QUOTED_NAME + r'\s+)?PRIMARY\s+KEY\s*\(([^)]+)\)',
    re.IGNORECASE)
TABLE_FK_PATTERN = re.compile(
    r'^(?:CONSTRAINT\s+' + QUOTED_NAME + r'\s+)?FOREIGN\s+KEY\s*\(([^)]+)\)\s*REFERENCES\s+'
    + QUOTED_NAME + r'\s*\(([^)]+)\)',
    re.IGNORECASE)
OTHER_CONSTRAINT_PATTERN = re.compile(r'^(?:CONSTRAINT|UNIQUE|KEY|INDEX|CHECK|FULLTEXT|SPATIAL)\b', re.IGNORECASE)
COLUMN_PATTERN = re.compile(
    r'^' + QUOTED_NAME + r'\s+([A-Za-z0-9_]+(?:\s*\([^)]*\))?)(.*)$',
    re.IGNORECASE | re.DOTALL)
INLINE_PK_PATTERN = re.compile(r'PRIMARY\s+KEY', re.IGNORECASE)
INLINE_REF_PATTERN = re.compile(r'REFERENCES\s+' + QUOTED_NAME + r'\s*\(([^)]+)\)', re.IGNORECASE)


def _split_names(raw):
    """ 'a, `b`' -> ['a', 'b'] """
    return [name.strip().strip('`"[]').strip() for name in raw.split(',') if name.strip().strip('`"[]').strip()]


# --- FD text ---

def _fd_from_segment(segment):
    parts = ARROW_PATTERN.split(segment)
    if len(parts) != 2:
        return None
    return FunctionalDependency.from_record({"left": TOKEN_PATTERN.findall(parts[0]),
                                             "right": TOKEN_PATTERN.findall(parts[1])})


def _parse_fd_clause(clause):
    segments = [seg.strip() for seg in clause.split(',') if seg.strip()]
    arrow_counts = [len(ARROW_PATTERN.findall(seg)) for seg in segments]

    if segments and all(count == 1 for count in arrow_counts):
        # 'A -> B, C -> D'
        candidates = [_fd_from_segment(seg) for seg in segments]
    elif len(ARROW_PATTERN.findall(clause)) == 1:
        # 'A, B -> C, D'
        candidates = [_fd_from_segment(clause)]
    else:
        candidates = [_fd_from_segment(seg) for seg, count in zip(segments, arrow_counts) if count == 1]
    return [fd for fd in candidates if fd is not None]


def _parse_fd_line(line):
    # ';' always separates FDs; ',' may also separate attributes inside one side
    fds = []
    for clause in line.split(';'):
        if clause.strip():
            fds.extend(_parse_fd_clause(clause.strip()))
    return fds


def parse_fd_text(text):
    """
    Parses FD lines ('A, B -> C' or 'A -> B; C -> D') into FunctionalDependency objects.
    Lines without a usable arrow are dropped.
    """
    fds = []
    for line in (text or '').splitlines():
        line = line.strip()
        if not line or not ARROW_PATTERN.search(line):
            continue
        parsed = _parse_fd_line(line)
        if not parsed:
            logger.debug("Dropped malformed FD line: %r", line)
        fds.extend(parsed)
    return fds


# --- SQL DDL ---

def split_top_level_commas(body):
    """ Splits a CREATE TABLE body on commas that are not nested inside parentheses. """
    parts = []
    buf = []
    depth = 0
    for ch in body:
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth = max(0, depth - 1)
        if ch == ',' and depth == 0:
            parts.append(''.join(buf))
            buf = []
        else:
            buf.append(ch)
    parts.append(''.join(buf))
    return [part.strip() for part in parts if part.strip()]


def _extract_table_bodies(text):
    """ Yields (table_name, body) for each CREATE TABLE whose parentheses balance. """
    for match in CREATE_TABLE_PATTERN.finditer(text):
        depth = 1
        start = match.end()
        for pos in range(start, len(text)):
            ch = text[pos]
            if ch == '(':
                depth += 1
            elif ch == ')':
                depth -= 1
                if depth == 0:
                    yield match.group(1), text[start:pos]
                    break
        else:
            logger.debug("Skipped CREATE TABLE %s: unbalanced parentheses", match.group(1))


def _parse_table(table_name, body, relationships):
    columns = []
    pk_columns = []
    foreign_keys = []  # (fk columns, ForeignKeyRef)

    for definition in split_top_level_commas(body):
        pk_match = TABLE_PK_PATTERN.match(definition)
        if pk_match:
            pk_columns.extend(_split_names(pk_match.group(2)))
            continue

        fk_match = TABLE_FK_PATTERN.match(definition)
        if fk_match:
            fk_cols = _split_names(fk_match.group(2))
            ref = ForeignKeyRef(table=fk_match.group(3), columns=_split_names(fk_match.group(4)))
            foreign_keys.append((fk_cols, ref))
            relationships.append(Relationship(from_table=table_name, to_table=ref.table,
                                              fk_columns=fk_cols, ref_columns=ref.columns))
            continue

        if OTHER_CONSTRAINT_PATTERN.match(definition):
            continue

        col_match = COLUMN_PATTERN.match(definition)
        if not col_match:
            logger.debug("Skipped unrecognised definition in %s: %r", table_name, definition)
            continue

        col_name, col_type, rest = col_match.group(1), col_match.group(2), col_match.group(3) or ''
        column = {"name": col_name, "type": re.sub(r'\s+', '', col_type), "is_pk": False, "fk_ref": None}
        if INLINE_PK_PATTERN.search(rest):
            column["is_pk"] = True
            pk_columns.append(col_name)
        ref_match = INLINE_REF_PATTERN.search(rest)
        if ref_match:
            ref = ForeignKeyRef(table=ref_match.group(1), columns=_split_names(ref_match.group(2)))
            column["fk_ref"] = ref
            foreign_keys.append(([col_name], ref))
            relationships.append(Relationship(from_table=table_name, to_table=ref.table,
                                              fk_columns=[col_name], ref_columns=ref.columns))
        columns.append(column)

    finalized = []
    for column in columns:
        fk_ref = column["fk_ref"]
        if fk_ref is None:
            fk_ref = next((ref for fk_cols, ref in foreign_keys if column["name"] in fk_cols), None)
        finalized.append(Column(
            name=column["name"],
            type=column["type"],
            is_pk=column["is_pk"] or column["name"] in pk_columns,
            is_fk=fk_ref is not None,
            fk_ref=fk_ref,
        ))
    return Table(name=table_name, columns=finalized)


def _guess_relationships(tables):
    """
    Infers child -> parent edges by matching any column name against single-column
    primary keys of other tables (case-insensitive). Common column names can produce
    false positives.
    """
    pk_owner = {}
    for table in tables.values():
        pk = table.primary_key
        if len(pk) == 1:
            pk_owner[pk[0].lower()] = (table.name, pk[0])

    guessed = []
    for table in tables.values():
        for column in table.columns:
            owner = pk_owner.get(column.name.lower())
            if owner and owner[0] != table.name:
                guessed.append(Relationship(from_table=table.name, to_table=owner[0],
                                            fk_columns=[column.name], ref_columns=[owner[1]]))
    return guessed


def parse_sql_file(text):
    """
    Parses CREATE TABLE statements into tables and foreign-key relationships.
    When no foreign key is declared anywhere, relationships are guessed from
    column names that match a single-column primary key elsewhere.
    """
    tables = {}
    relationships = []
    for table_name, body in _extract_table_bodies(text or ''):
        tables[table_name] = _parse_table(table_name, body, relationships)

    if not relationships:
        relationships = _guess_relationships(tables)
        if relationships:
            logger.debug("Guessed %d relationship(s) from primary key names", len(relationships))

    unique_relationships = []
    seen = set()
    for rel in relationships:
        if rel.identity not in seen:
            seen.add(rel.identity)
            unique_relationships.append(rel)

    return ParsedSchema(tables=tables, relationships=unique_relationships)


# --- FD inference ---

def infer_fds_from_tables(tables, relationships):
    """
    Baseline FDs from keys: PK -> non-PK columns per table, and FK columns -> parent PK
    per relationship. Duplicates are left for the canonical cover to remove.
    """
    fds = []
    for table in tables.values():
        pk_cols = table.primary_key
        other_cols = table.non_key_columns
        if pk_cols and other_cols:
            fds.append(FunctionalDependency(lhs=pk_cols, rhs=other_cols))

    for rel in relationships or []:
        parent = tables.get(rel.to_table)
        if parent is None:
            continue
        parent_pk = parent.primary_key
        if rel.fk_columns and parent_pk:
            fds.append(FunctionalDependency(lhs=rel.fk_columns, rhs=parent_pk))
    return fds


# --- Entry point ---

def _is_relation_line(line):
    match = RELATION_PATTERN.match(line)
    return bool(match) and match.group(1).upper() not in SQL_CONSTRAINT_WORDS


def parse_input(text):
    """
    Parses schema text into relations and FDs.

    Shorthand relation lines win; the remaining lines are read as FDs. Without
    any shorthand relation the text is read as SQL DDL instead, and FDs are
    inferred from its keys. If there are FDs but still no relation, a single
    universal relation R over the FD attributes is synthesised.
    """
    lines = [line.strip() for line in (text or '').splitlines() if line.strip()]
    relations = []
    fd_lines = []
    for line in lines:
        if _is_relation_line(line):
            match = RELATION_PATTERN.match(line)
            relations.append(Relation(name=match.group(1), attributes=TOKEN_PATTERN.findall(match.group(2))))
        else:
            fd_lines.append(line)

    fds = parse_fd_text('\n'.join(fd_lines))

    if not relations:
        schema = parse_sql_file(text)
        for table in schema.tables.values():
            relations.append(Relation(name=table.name, attributes=table.column_names))
        fds.extend(infer_fds_from_tables(schema.tables, schema.relationships))

    if not relations and fds:
        attrs = []
        for fd in fds:
            attrs.extend(a for a in fd.attributes if a not in attrs)
        relations.append(Relation(name='R', attributes=attrs))

    logger.debug("Parsed %d relation(s) and %d FD(s)", len(relations), len(fds))
    return ParsedInput(relations=relations, fds=fds)
