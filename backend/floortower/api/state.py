from flask import Blueprint, current_app, jsonify, request
from werkzeug.security import check_password_hash
from floortower.errors import StateNotFound, StoreUnavailable, WriteRejected
from floortower.services import countdown

state_api = Blueprint('state_api', __name__)


def _store():
    return current_app.extensions['game_store']


@state_api.route('', methods=['GET'])
def get_state():
    try:
        snapshot = _store().read_singleton()
    except StateNotFound as exc:
        return jsonify({'error': str(exc)}), 404
    except StoreUnavailable as exc:
        current_app.logger.warning(f"[api-state] read failed: {exc}")
        return jsonify({'error': str(exc)}), 503
    payload = snapshot.to_dict()
    # Convenience for scripted clients; views derive their own
    payload['timers'] = countdown.derive_timers(snapshot, countdown.utcnow()).to_dict()
    return jsonify(payload)


@state_api.route('', methods=['PATCH'])
def update_state():
    key = request.headers.get('X-Access-Key', '')
    if not key or not check_password_hash(current_app.config['ACCESS_KEY_HASH'], key):
        return jsonify({'error': 'Invalid access key'}), 401

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON object body is required'}), 400

    try:
        snapshot = _store().update_singleton(data)
    except StateNotFound as exc:
        return jsonify({'error': str(exc)}), 404
    except WriteRejected as exc:
        current_app.logger.info(f"[api-state] write rejected: {exc}")
        return jsonify({'error': str(exc)}), 400
    return jsonify(snapshot.to_dict())
