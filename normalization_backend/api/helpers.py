from .models import Relation

NORMAL_FORMS = ('1NF', '2NF', '3NF', 'BCNF')

# Longer prefixes first: a raw type is matched with startswith()
SQL_TYPE_MAP = {
    'DATETIME': 'DATETIME',
    'TIMESTAMP': 'TIMESTAMP',
    'DATE': 'DATE',
    'BIGINT': 'BIGINT',
    'SMALLINT': 'SMALLINT',
    'TINYINT': 'TINYINT',
    'INTEGER': 'INT',
    'INT': 'INT',
    'SERIAL': 'INT',
    'DECIMAL': 'DECIMAL(10, 2)',
    'NUMERIC': 'DECIMAL(10, 2)',
    'FLOAT': 'FLOAT',
    'DOUBLE': 'DOUBLE',
    'REAL': 'FLOAT',
    'BOOLEAN': 'BOOLEAN',
    'BOOL': 'BOOLEAN',
    'VARCHAR': 'VARCHAR(255)',
    'CHAR': 'CHAR(255)',
    'TEXT': 'TEXT',
}

RESERVED_KEYWORDS = {
    'TABLE', 'SELECT', 'INSERT', 'UPDATE', 'DELETE', 'WHERE', 'FROM', 'CREATE',
    'ALTER', 'DROP', 'INDEX', 'KEY', 'PRIMARY', 'FOREIGN', 'GROUP', 'BY', 'ORDER',
    'ASC', 'DESC', 'HAVING', 'JOIN', 'LEFT', 'RIGHT', 'INNER', 'ON', 'AS',
    'COUNT', 'SUM', 'AVG', 'MIN', 'MAX', 'AND', 'OR', 'NOT', 'NULL', 'IS', 'LIKE',
}


class SchemaTooLargeError(ValueError):
    """ Raised by the host when a schema exceeds the candidate-key enumeration ceiling. """

    def __init__(self, attribute_count, limit):
        self.attribute_count = attribute_count
        self.limit = limit
        super().__init__(f"Schema has {attribute_count} attributes; the limit is {limit}.")


def sanitize_identifier(name):
    if not name:
        return None
    sanitized = "".join(c if c.isalnum() or c == '_' else '_' for c in str(name).strip().replace(' ', '_'))
    if not sanitized or not (sanitized[0].isalpha() or sanitized[0] == '_'):
        sanitized = f"col_{sanitized}"
    if sanitized.upper() in RESERVED_KEYWORDS:
        sanitized = f"col_{sanitized}"
    return sanitized


def format_relations(relations):
    """ Renders relations as 'Name(a, b)' strings for display. """
    formatted = []
    for rel in relations or []:
        if isinstance(rel, str):
            formatted.append(rel)
        else:
            formatted.append(Relation.from_record(rel).display())
    return formatted


def relations_payload(relations):
    return [rel.model_dump() for rel in relations]


def steps_payload(steps):
    """ JSON-ready form of normalize_steps() output: structured lists plus display strings. """
    payload = {nf: relations_payload(steps.get(nf, [])) for nf in NORMAL_FORMS}
    payload["display"] = {nf: format_relations(steps.get(nf, [])) for nf in NORMAL_FORMS}
    return payload
