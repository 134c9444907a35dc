import logging

from flask import Blueprint, current_app, jsonify, request

from .decomposition import analyze_normal_forms, attribute_universe, lost_dependencies, normalize_steps, project_fds
from .helpers import NORMAL_FORMS, SchemaTooLargeError, format_relations, steps_payload
from .normalization_utils import find_candidate_keys, generate_create_table_sql
from .schema_parser import parse_fd_text, parse_input, parse_sql_file

logger = logging.getLogger(__name__)

normalization_bp = Blueprint('normalization', __name__)


def _read_schema_request(text_key):
    """
    Validates the JSON body and parses schema text plus optional explicit FD text.
    Returns (text, parsed, fds, error_response); error_response is None on success.
    """
    if not request.is_json:
        return None, None, None, (jsonify({"error": "Request must be JSON", "success": False}), 400)
    payload = request.get_json(silent=True)
    if not payload or not isinstance(payload, dict):
        return None, None, None, (jsonify({"error": "No JSON data received", "success": False}), 400)

    text = payload.get(text_key)
    if not isinstance(text, str) or not text.strip():
        return None, None, None, (jsonify({"error": "No input provided", "success": False}), 400)

    parsed = parse_input(text)
    fds = list(parsed.fds)
    extra_fds = payload.get('fds')
    if isinstance(extra_fds, str) and extra_fds.strip():
        fds.extend(parse_fd_text(extra_fds))
    return text, parsed, fds, None


def _enforce_attribute_limit(relations, fds):
    limit = current_app.config['MAX_ATTRIBUTES']
    universe = attribute_universe(relations, fds)
    if len(universe) > limit:
        raise SchemaTooLargeError(len(universe), limit)
    return universe


def _too_large_response(err):
    return jsonify({
        "error": str(err),
        "attributeCount": err.attribute_count,
        "limit": err.limit,
        "success": False,
    }), 413


def _create_table_statements(steps, fds, attributes_info):
    """ CREATE TABLE text per relation, keyed by its first candidate key under the projected FDs. """
    statements = {}
    for nf in NORMAL_FORMS:
        statements[nf] = []
        for rel in steps[nf]:
            if not rel.attributes:
                continue
            keys = find_candidate_keys(rel.attributes, project_fds(rel.attributes, fds))
            statements[nf].append(generate_create_table_sql(rel.name, rel.attributes, set(keys[0]), attributes_info))
    return statements


@normalization_bp.route('/api/ping', methods=['GET'])
def ping_pong():
    return jsonify({"message": "pong"}), 200


@normalization_bp.route('/api/normalize/steps', methods=['POST'])
def normalization_steps():
    _, parsed, fds, error = _read_schema_request('input')
    if error:
        return error

    try:
        universe = _enforce_attribute_limit(parsed.relations, fds)
        steps = normalize_steps(parsed.relations, fds)
        response = {"success": True}
        response.update(steps_payload(steps))
        response["metadata"] = {
            "originalRelations": len(parsed.relations),
            "functionalDependencies": len(fds),
            "parsedInput": bool(parsed.relations),
            "lostFds": lost_dependencies(steps['BCNF'], project_fds(universe, fds)),
        }
        return jsonify(response), 200

    except SchemaTooLargeError as e:
        logger.warning("Rejected schema: %s", e)
        return _too_large_response(e)
    except Exception:
        logger.exception("Normalization error")
        return jsonify({"error": "Failed to compute normalization steps", "success": False}), 500


@normalization_bp.route('/api/normalize/raw', methods=['POST'])
def normalize_raw_sql():
    sql_text, parsed, fds, error = _read_schema_request('sql')
    if error:
        return error

    try:
        _enforce_attribute_limit(parsed.relations, fds)
        steps = normalize_steps(parsed.relations, fds)

        # Column types survive into the generated DDL when the input was SQL
        attributes_info = {}
        for table in parse_sql_file(sql_text).tables.values():
            for col in table.columns:
                attributes_info.setdefault(col.name, {"type": col.type})

        response = {
            "success": True,
            "formatted": sql_text.strip(),
            "relations": format_relations(parsed.relations),
            "fds": [fd.to_dict() for fd in fds],
        }
        response.update(steps_payload(steps))
        response["sql"] = _create_table_statements(steps, fds, attributes_info)
        return jsonify(response), 200

    except SchemaTooLargeError as e:
        logger.warning("Rejected schema: %s", e)
        return _too_large_response(e)
    except Exception:
        logger.exception("Raw normalization error")
        return jsonify({"error": "Failed to normalize raw SQL", "success": False}), 500


@normalization_bp.route('/api/normalize/upload', methods=['POST'])
def upload_sql_file():
    uploaded = request.files.get('sqlFile')
    if uploaded is None or not uploaded.filename:
        return jsonify({"error": "No file uploaded", "success": False}), 400

    try:
        content = uploaded.read().decode('utf-8', errors='replace')
        schema = parse_sql_file(content)
        logger.info("Parsed upload %s: %d table(s), %d relationship(s)",
                    uploaded.filename, len(schema.tables), len(schema.relationships))
        response = {"success": True}
        response.update(schema.to_payload())
        return jsonify(response), 200

    except Exception:
        logger.exception("Upload processing error")
        return jsonify({"error": "Failed to parse uploaded SQL file", "success": False}), 500


@normalization_bp.route('/api/analyze_normalization', methods=['POST'])
def analyze_normalization():
    _, parsed, fds, error = _read_schema_request('input')
    if error:
        return error

    try:
        universe = _enforce_attribute_limit(parsed.relations, fds)
        results = analyze_normal_forms(universe, fds)
        results["success"] = True
        results["notes"] = ["Analysis covers the union of all parsed relations and the supplied FDs."]
        if len(results["candidateKeys"]) <= 1:
            results["notes"].append("Full accuracy requires all relevant FDs; only one candidate key was found.")
        return jsonify(results), 200

    except SchemaTooLargeError as e:
        logger.warning("Rejected schema: %s", e)
        return _too_large_response(e)
    except Exception:
        logger.exception("Unexpected error during normalization analysis")
        return jsonify({"error": "Failed to analyze normalization", "success": False}), 500
