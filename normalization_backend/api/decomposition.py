"""
Stepwise normalization of a parsed schema to 1NF, 2NF, 3NF and BCNF.

All functions are pure: they take relations/FDs, never mutate them, and
return fresh Relation objects. Where a correct decomposition is not unique
the result is pinned by two tie-breaks:

* the working primary key is the first candidate key in enumeration order
  (smallest subsets first, then bitmask order over the attribute list);
* BCNF splits on the first violating FD in input order.
"""
import logging

from .models import Relation, normalize_fds, normalize_relations
from .normalization_utils import (_as_rules, _closure_from_rules, calculate_closure, check_fd_preservation,
                                  find_candidate_keys, get_minimal_cover, is_superkey)

logger = logging.getLogger(__name__)


def _unique(items):
    return list(dict.fromkeys(items))


def attribute_universe(relations, fds):
    """ Union of relation attributes, or of FD attributes when there is no relation. """
    relations = normalize_relations(relations)
    if relations:
        return _unique(attr for rel in relations for attr in rel.attributes)
    return _unique(attr for fd in normalize_fds(fds) for attr in fd.attributes)


def project_fds(attributes, fds):
    """ FDs whose LHS and RHS both lie inside the given attributes, input order kept. """
    attribute_set = set(attributes)
    return [fd for fd in normalize_fds(fds) if set(fd.attributes).issubset(attribute_set)]


# --- 2NF ---

def decompose_2nf(relation_name, attributes, primary_key, fds):
    """
    Splits off partial dependencies: every FD whose LHS is a non-empty proper
    subset of the primary key moves LHS U RHS into a relation named
    '<relation>_<LHS>' and drops the RHS from the remaining relation.
    The reduced original comes first, then the split-offs in FD order.
    """
    fds = normalize_fds(fds)
    remaining = list(attributes)
    if not remaining or not primary_key:
        return [Relation(name=relation_name, attributes=remaining)]

    pk_set = set(primary_key)
    split_offs = []
    for fd in fds:
        if not fd.lhs_set.issubset(pk_set) or fd.lhs_set == pk_set:
            continue
        split_offs.append(Relation(name=f"{relation_name}_{''.join(fd.lhs)}",
                                   attributes=_unique(fd.lhs + fd.rhs)))
        remaining = [attr for attr in remaining if attr not in fd.rhs_set or attr in fd.lhs_set]
        logger.debug("2NF: partial dependency %s in %s", fd, relation_name)

    return [Relation(name=relation_name, attributes=remaining)] + split_offs


# --- 3NF ---

def synthesize_3nf(attributes, fds):
    """
    3NF synthesis: one relation per canonical-cover FD, plus a relation holding
    the first candidate key when no synthesized relation already contains it.
    """
    cover = get_minimal_cover(fds)
    schemas = [(_unique(fd.lhs + fd.rhs), f"from FD {', '.join(fd.lhs)} -> {', '.join(fd.rhs)}") for fd in cover]

    keys = find_candidate_keys(attributes, fds)
    key = keys[0] if keys else []
    if key and not any(set(key).issubset(schema) for schema, _ in schemas):
        logger.debug("3NF: adding candidate key relation %s", key)
        schemas.append((list(key), "added to preserve key"))

    return [Relation(name=f"R{i + 1}", attributes=schema, reason=reason)
            for i, (schema, reason) in enumerate(schemas)]


# --- BCNF ---

def find_bcnf_violation(attributes, fds):
    """
    Returns the first non-trivial FD (input order) whose LHS does not determine
    every attribute of the relation, or None if the relation is in BCNF.
    """
    fds = normalize_fds(fds)
    attribute_set = set(attributes)
    rules = _as_rules(fds)
    for fd in fds:
        if fd.is_trivial:
            continue
        if not _closure_from_rules(fd.lhs, rules).issuperset(attribute_set):
            return fd
    return None


def bcnf_decompose(attributes, fds):
    """
    BCNF analysis: split R on a violating X -> Y into X U Y and (R - Y) U X,
    project the FDs onto each side and repeat until no side violates BCNF.

    Pending relations live on an explicit stack; the second half is pushed
    first so the first half's branch is fully decomposed before it, which
    fixes the output numbering. Each stack entry owns its projected FD list.
    """
    finished = []
    pending = [(list(attributes), project_fds(attributes, fds))]
    while pending:
        current, current_fds = pending.pop()
        violation = find_bcnf_violation(current, current_fds)
        if violation is None:
            finished.append(current)
            continue

        first = _unique(violation.lhs + violation.rhs)
        second = [attr for attr in current if attr not in violation.rhs_set or attr in violation.lhs_set]
        logger.debug("BCNF violation %s in %s: split into %s and %s", violation, current, first, second)

        pending.append((second, project_fds(second, current_fds)))
        pending.append((first, project_fds(first, current_fds)))

    relations = []
    seen = set()
    for schema in finished:
        identity = frozenset(schema)
        if identity in seen:
            continue
        seen.add(identity)
        relations.append(Relation(name=f"R{len(relations) + 1}", attributes=schema, reason="BCNF decomposition"))
    return relations


# --- All steps ---

def normalize_steps(relations, fds):
    """
    Computes the four normalization levels for one schema.

    relations: Relation objects or raw records ({name, attributes|attrs} or 'R(A, B)').
    fds: FunctionalDependency objects or raw records; malformed ones are dropped.
    Returns: {'1NF': [...], '2NF': [...], '3NF': [...], 'BCNF': [...]} of Relation lists.
    """
    relations = normalize_relations(relations)
    fds = normalize_fds(fds)
    attrs = attribute_universe(relations, fds)

    steps = {'1NF': [], '2NF': [], '3NF': [], 'BCNF': []}
    if not attrs and not relations:
        return steps

    # 1NF: atomic values assumed
    steps['1NF'] = [Relation(name=rel.name, attributes=rel.attributes, reason="Atomic values assumed")
                    for rel in relations]

    # 2NF: per relation, against its own local FDs
    if relations:
        for rel in relations:
            local_fds = project_fds(rel.attributes, fds)
            keys = find_candidate_keys(rel.attributes, local_fds)
            primary_key = keys[0] if keys else []
            for decomposed in decompose_2nf(rel.name, rel.attributes, primary_key, local_fds):
                steps['2NF'].append(Relation(name=decomposed.name, attributes=decomposed.attributes,
                                             reason="Removed partial dependencies"))
    else:
        steps['2NF'].append(Relation(name='R', attributes=attrs, reason="Single relation"))

    universe_fds = project_fds(attrs, fds)
    if len(universe_fds) < len(fds):
        logger.debug("Ignoring %d FD(s) that reference attributes outside the schema", len(fds) - len(universe_fds))

    if attrs:
        steps['3NF'] = synthesize_3nf(attrs, universe_fds)
        steps['BCNF'] = bcnf_decompose(attrs, universe_fds)
    return steps


def lost_dependencies(relations, fds):
    """ FDs not contained in any single relation of a decomposition. """
    schemas = [rel.attribute_set for rel in normalize_relations(relations)]
    return check_fd_preservation(normalize_fds(fds), schemas)


# --- Analysis ---

def analyze_normal_forms(attributes, fds):
    """
    Reports which normal forms a single relation satisfies.

    Returns candidate keys, prime attributes, the minimal cover and, per normal
    form, {status, message, violations}. Violations are display strings.
    """
    all_attributes = _unique(attributes)
    attribute_set = set(all_attributes)
    fds = project_fds(all_attributes, normalize_fds(fds))

    candidate_keys = find_candidate_keys(all_attributes, fds) if all_attributes else []
    prime_attributes = {attr for ck in candidate_keys for attr in ck}
    non_prime_attributes = attribute_set - prime_attributes

    results = {
        "attributes": all_attributes,
        "candidateKeys": candidate_keys,
        "primeAttributes": [attr for attr in all_attributes if attr in prime_attributes],
        "minimalCover": [fd.to_dict() for fd in get_minimal_cover(fds)],
        "analysis": {
            "1NF": {"status": "ASSUMED_COMPLIANT", "message": "Assumed compliant (atomic values).", "violations": []},
            "2NF": {"status": "COMPLIANT", "message": "No partial dependencies found.", "violations": []},
            "3NF": {"status": "COMPLIANT", "message": "No transitive dependencies found.", "violations": []},
            "BCNF": {"status": "COMPLIANT", "message": "All determinants are superkeys.", "violations": []},
        },
    }
    analysis = results["analysis"]

    # --- 2NF --- (no non-prime attribute depends on part of a candidate key)
    for ck in candidate_keys:
        if len(ck) < 2:
            continue
        for mask in range(1, (1 << len(ck)) - 1):
            subset = [ck[i] for i in range(len(ck)) if mask & (1 << i)]
            partial = calculate_closure(subset, fds) & non_prime_attributes
            if partial:
                violation = (f"Partial Dependency: {{{', '.join(subset)}}} -> {{{', '.join(sorted(partial))}}} "
                             f"(violates dependency on CK {{{', '.join(ck)}}})")
                if violation not in analysis["2NF"]["violations"]:
                    analysis["2NF"]["violations"].append(violation)

    # --- 3NF / BCNF --- (determinants must be superkeys; 3NF excuses prime dependents)
    for fd in fds:
        if fd.is_trivial:
            continue
        if is_superkey(fd.lhs, attribute_set, fds):
            continue
        dependents = [dep for dep in fd.rhs if dep not in fd.lhs_set]
        non_prime_dependents = [dep for dep in dependents if dep in non_prime_attributes]
        for dep in non_prime_dependents:
            violation = (f"Transitive Dependency: {{{', '.join(fd.lhs)}}} -> {{{dep}}} "
                         f"(Determinant is not superkey, Dependent is not prime)")
            if violation not in analysis["3NF"]["violations"]:
                analysis["3NF"]["violations"].append(violation)
        violation = (f"BCNF Violation: Determinant {{{', '.join(fd.lhs)}}} is not a superkey "
                     f"(determines {{{', '.join(dependents)}}})")
        if violation not in analysis["BCNF"]["violations"]:
            analysis["BCNF"]["violations"].append(violation)

    if analysis["2NF"]["violations"]:
        analysis["2NF"].update(status="VIOLATION_DETECTED",
                               message="Partial dependencies found (non-prime attributes depend on only part of a candidate key).")
    if analysis["3NF"]["violations"]:
        analysis["3NF"].update(status="VIOLATION_DETECTED",
                               message="Transitive dependencies found (non-prime attributes depend on a non-superkey).")
    if analysis["BCNF"]["violations"]:
        analysis["BCNF"].update(status="VIOLATION_DETECTED",
                                message="BCNF violation(s) found (determinant of an FD is not a superkey).")
    return results
