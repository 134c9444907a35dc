import logging

from .helpers import SQL_TYPE_MAP, sanitize_identifier
from .models import FunctionalDependency, normalize_fds

logger = logging.getLogger(__name__)


def _as_rules(fds):
    """ Pre-computes (lhs_set, rhs_set) pairs so closure loops avoid rebuilding sets. """
    rules = []
    for fd in fds:
        fd = FunctionalDependency.from_record(fd)
        if fd is not None:
            rules.append((fd.lhs_set, fd.rhs_set))
    return rules


def _closure_from_rules(attributes, rules):
    closure = set(attributes)
    changed = True
    while changed:
        changed = False
        for determinant_set, dependents_set in rules:
            # Fire the rule once its whole determinant is known
            if determinant_set.issubset(closure) and not dependents_set.issubset(closure):
                closure.update(dependents_set)
                changed = True
    return closure


def calculate_closure(attributes_to_close, fds):
    """ Calculates the attribute closure (X+) by scanning the FDs until a pass adds nothing. """
    attributes = set(attributes_to_close or [])
    if not attributes or not fds:
        return attributes
    return _closure_from_rules(attributes, _as_rules(fds))


def is_superkey(attributes, universe, fds):
    return calculate_closure(attributes, fds).issuperset(universe)


def find_candidate_keys(attributes, fds):
    """
    Enumerates candidate keys (minimal superkeys) of the attribute universe.

    Subsets are generated by bitmask (bit i selects attributes[i]) and then
    stable-sorted by size, so smaller keys are found first and the minimality
    test only has to look at keys kept earlier. Cost is O(2^n) closures; the
    caller is responsible for bounding n.

    Returns a list of attribute lists, in generation order. If nothing
    qualifies (only possible for an empty universe) the full attribute list
    is returned as a single degenerate key.
    """
    all_attributes = list(dict.fromkeys(attributes or []))
    universe = set(all_attributes)
    rules = _as_rules(fds or [])
    n = len(all_attributes)

    subsets = []
    for mask in range(1, 1 << n):
        subsets.append([all_attributes[i] for i in range(n) if mask & (1 << i)])
    subsets.sort(key=len)

    candidate_keys = []
    for subset in subsets:
        closure = _closure_from_rules(subset, rules)
        if not closure.issuperset(universe):
            continue
        subset_set = set(subset)
        # Any earlier key inside this subset makes it a non-minimal superkey
        if any(set(ck).issubset(subset_set) for ck in candidate_keys):
            continue
        candidate_keys.append(subset)

    if not candidate_keys:
        candidate_keys.append(all_attributes)
    return candidate_keys


def get_minimal_cover(fds):
    """
    Calculates a canonical (minimal) cover for the given FDs.

    1. Split every FD into singleton right-hand sides.
    2. Remove extraneous left-hand attributes, cascading within one FD.
    3. Remove redundant FDs, restarting after every removal.
    4. Merge FDs that share the same left-hand side.

    Returns a list of FunctionalDependency objects in first-appearance order.
    """
    fds = normalize_fds(list(fds or []))
    if not fds:
        return []

    # --- Step 1: Singleton right-hand sides ---
    cover = []
    for fd in fds:
        for dep in fd.rhs:
            cover.append([list(fd.lhs), dep])

    # --- Step 2: Minimize left-hand sides ---
    for index, (determinant, dep) in enumerate(cover):
        if len(determinant) < 2:
            continue
        position = 0
        while position < len(determinant) and len(determinant) > 1:
            reduced = determinant[:position] + determinant[position + 1:]
            rules = [(frozenset(d), frozenset([r])) for i, (d, r) in enumerate(cover) if i != index]
            rules.append((frozenset(determinant), frozenset([dep])))
            if dep in _closure_from_rules(reduced, rules):
                logger.debug("Minimized LHS: removed '%s' from %s -> %s", determinant[position], determinant, dep)
                determinant = reduced
                cover[index][0] = determinant
            else:
                position += 1

    # --- Step 3: Remove redundant FDs ---
    changed = True
    while changed:
        changed = False
        for index, (determinant, dep) in enumerate(cover):
            others = [(frozenset(d), frozenset([r])) for i, (d, r) in enumerate(cover) if i != index]
            if dep in _closure_from_rules(determinant, others):
                logger.debug("Removed redundant FD: %s -> %s", determinant, dep)
                del cover[index]
                changed = True
                break

    # --- Step 4: Merge same-LHS FDs ---
    merged = {}
    for determinant, dep in cover:
        key = frozenset(determinant)
        if key not in merged:
            merged[key] = (determinant, [])
        if dep not in merged[key][1]:
            merged[key][1].append(dep)

    minimal_cover = [FunctionalDependency(lhs=det, rhs=deps) for det, deps in merged.values()]
    logger.debug("Final minimal cover: %s", [str(fd) for fd in minimal_cover])
    return minimal_cover


def check_fd_preservation(original_fds, decomposed_schemas):
    """
    Checks which FDs from the original set are preserved in the decomposition.
    An FD X -> Y is preserved here if X U Y sits inside at least one decomposed schema.
    decomposed_schemas: iterable of attribute collections, one per decomposed relation.
    Returns: list of lost FDs as display strings.
    """
    schema_sets = [set(schema) for schema in decomposed_schemas]
    lost_fds = []
    for fd in normalize_fds(list(original_fds or [])):
        fd_attributes = fd.lhs_set | fd.rhs_set
        if not any(fd_attributes.issubset(schema_set) for schema_set in schema_sets):
            lost_fds.append(f"{{{', '.join(sorted(fd.lhs))}}} -> {{{', '.join(sorted(fd.rhs))}}}")
    return lost_fds


def generate_create_table_sql(table_name, attributes, pk_attributes, attributes_info=None):
    """ Generates CREATE TABLE SQL for a decomposed relation, keeping the relation's column order. """
    attributes_info = attributes_info or {}
    safe_table_name = sanitize_identifier(table_name)
    column_definitions = []
    primary_keys = []

    for attr in attributes:
        col_info = attributes_info.get(attr)
        if col_info is None:
            col_type = 'TEXT'
        else:
            raw_type = (col_info.get('type') or '').upper()
            col_type = next((mapped for key, mapped in SQL_TYPE_MAP.items() if raw_type.startswith(key)), 'TEXT')

        col_def_parts = [f"`{sanitize_identifier(attr)}`", col_type]
        if attr in pk_attributes:
            col_def_parts.append("NOT NULL")
            primary_keys.append(f"`{sanitize_identifier(attr)}`")
        column_definitions.append(" ".join(col_def_parts))

    if not column_definitions:
        raise ValueError(f"Cannot create table '{safe_table_name}' with no columns.")

    sql = f"CREATE TABLE `{safe_table_name}` (\n"
    sql += ",\n".join(f"    {col_def}" for col_def in column_definitions)
    if primary_keys:
        sql += f",\n    PRIMARY KEY ({', '.join(primary_keys)})"
    sql += "\n);"
    return sql
