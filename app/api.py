"""API Blueprint - order wizard sessions and garment catalog."""

import asyncio
import logging
import threading
import uuid
from typing import Dict

from flask import Blueprint, current_app, jsonify, request

from models.garment import GarmentTypeCode
from services.garment_catalog import get_garment_catalog
from services.measurement_schema import get_measurement_resolver
from workflow.controller import SUBMITTED, StepController

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)

# Wizard sessions live in process memory; one controller per session
_sessions: Dict[str, StepController] = {}
_wizard_loop = asyncio.new_event_loop()
_loop_lock = threading.Lock()


def _run(coro):
    """
    Run a coroutine on the persistent event loop.

    The loop is shared by all sessions and the lock is held until the
    coroutine finishes, so backend calls are served one at a time across the
    process. A slow submit in one session delays every other session's
    search, load and submit requests.
    """
    with _loop_lock:
        return _wizard_loop.run_until_complete(coro)


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _dump(model) -> dict:
    return model.model_dump(mode="json")


def _new_wizard(order=None) -> StepController:
    factory = current_app.config.get("WIZARD_FACTORY")
    if factory is None:
        from workflow import create_order_wizard

        settings = current_app.config.get("SETTINGS")
        return create_order_wizard(settings, order=order)
    return factory(order=order)


def _wizard_or_404(session_id: str):
    wizard = _sessions.get(session_id)
    if wizard is None:
        return None, (jsonify({'error': 'Session not found'}), 404)
    return wizard, None


def _step_response(session_id: str, wizard: StepController, result):
    payload = {
        'session_id': session_id,
        'result': _dump(result),
        'wizard': _dump(wizard.snapshot()),
    }
    return jsonify(payload), 200 if result.ok else 422


def _mutation_response(session_id: str, wizard: StepController, result):
    payload = {
        'session_id': session_id,
        'ok': result.ok,
        'errors': [_dump(issue) for issue in result.errors],
        'wizard': _dump(wizard.snapshot()),
    }
    return jsonify(payload), 200 if result.ok else 422


# ============================================================================
# Wizard sessions
# ============================================================================


@api_bp.route('/wizard', methods=['POST'])
def create_wizard():
    """
    Open a new order wizard.

    Body:
        - order: existing order record to edit (optional)

    Returns:
        201: Session ID and wizard state
    """
    wizard = _new_wizard(order=_body().get('order'))
    session_id = str(uuid.uuid4())
    _sessions[session_id] = wizard
    logger.info("[API] Wizard session %s opened", session_id)
    return jsonify({'session_id': session_id, 'wizard': _dump(wizard.snapshot())}), 201


@api_bp.route('/wizard/<session_id>', methods=['GET'])
def get_wizard(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    return jsonify({'session_id': session_id, 'wizard': _dump(wizard.snapshot())}), 200


@api_bp.route('/wizard/<session_id>', methods=['DELETE'])
def cancel_wizard(session_id: str):
    """Cancel the wizard and drop the session."""
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    result = wizard.cancel()
    if result.ok:
        _sessions.pop(session_id, None)
    return jsonify({'session_id': session_id, 'result': _dump(result)}), 200 if result.ok else 409


@api_bp.route('/wizard/<session_id>/advance', methods=['POST'])
def advance(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    result = _run(wizard.advance())
    response = _step_response(session_id, wizard, result)
    if wizard.status == SUBMITTED:
        _sessions.pop(session_id, None)
        logger.info("[API] Wizard session %s submitted and closed", session_id)
    return response


@api_bp.route('/wizard/<session_id>/retreat', methods=['POST'])
def retreat(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    return _step_response(session_id, wizard, wizard.retreat())


# ============================================================================
# Customer step
# ============================================================================


def _call_response(session_id: str, wizard: StepController, result, data=None):
    payload = {
        'session_id': session_id,
        'ok': result.ok,
        'data': data,
        'issues': [_dump(issue) for issue in result.issues],
        'service_error': _dump(result.service_error) if result.service_error else None,
        'wizard': _dump(wizard.snapshot()),
    }
    if result.ok:
        return jsonify(payload), 200
    return jsonify(payload), 502 if result.service_error else 422


@api_bp.route('/wizard/<session_id>/customers/search', methods=['GET'])
def search_customers(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    result = _run(wizard.search_customers(request.args.get('q', '')))
    customers = [_dump(c) for c in result.data or []]
    return _call_response(session_id, wizard, result, customers)


@api_bp.route('/wizard/<session_id>/customers', methods=['POST'])
def create_customer(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    result = _run(wizard.create_customer(_body()))
    return _call_response(session_id, wizard, result, _dump(result.data) if result.data else None)


@api_bp.route('/wizard/<session_id>/customer', methods=['PUT'])
def select_customer(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    return _mutation_response(session_id, wizard, wizard.select_customer(_body()))


# ============================================================================
# Product and measurement steps
# ============================================================================


@api_bp.route('/wizard/<session_id>/fabrics', methods=['GET'])
def list_fabrics(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    result = _run(wizard.list_fabrics(request.args.to_dict()))
    fabrics = [_dump(f) for f in result.data or []]
    return _call_response(session_id, wizard, result, fabrics)


@api_bp.route('/wizard/<session_id>/items', methods=['POST'])
def add_item(session_id: str):
    """
    Add a garment.

    Body:
        - category: catalog category key
        - name: garment name
    """
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    data = _body()
    result = wizard.store.add_line_item(data.get('category'), data.get('name'))
    return _mutation_response(session_id, wizard, result)


@api_bp.route('/wizard/<session_id>/items/<int:index>', methods=['PATCH'])
def update_item(session_id: str, index: int):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    return _mutation_response(session_id, wizard, wizard.store.update_line_item(index, _body()))


@api_bp.route('/wizard/<session_id>/items/<int:index>', methods=['DELETE'])
def remove_item(session_id: str, index: int):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    return _mutation_response(session_id, wizard, wizard.store.remove_line_item(index))


@api_bp.route('/wizard/<session_id>/items/<int:index>/accessories', methods=['POST'])
def toggle_accessory(session_id: str, index: int):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    result = wizard.store.toggle_accessory(index, str(_body().get('option', '')))
    return _mutation_response(session_id, wizard, result)


@api_bp.route('/wizard/<session_id>/items/<int:index>/measurements/<key>', methods=['PUT'])
def set_measurement(session_id: str, index: int, key: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    result = wizard.store.set_measurement(index, key, _body().get('value'))
    return _mutation_response(session_id, wizard, result)


@api_bp.route('/wizard/<session_id>/measurements', methods=['GET'])
def measurement_plan(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    plan = [_dump(task) for task in wizard.measurement_plan()]
    return jsonify({'session_id': session_id, 'plan': plan}), 200


@api_bp.route('/wizard/<session_id>/measurements/load', methods=['POST'])
def load_measurements(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    result = _run(wizard.load_saved_measurements())
    return _call_response(session_id, wizard, result, {'found': result.data is not None})


# ============================================================================
# Review and payment
# ============================================================================


@api_bp.route('/wizard/<session_id>/dates', methods=['PUT'])
def set_dates(session_id: str):
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    data = _body()
    result = wizard.store.set_dates(data.get('delivery_date'), data.get('trial_date'))
    return _mutation_response(session_id, wizard, result)


@api_bp.route('/wizard/<session_id>/payment', methods=['PUT'])
def set_payment(session_id: str):
    """
    Set payment terms.

    Body:
        - discount: number (optional)
        - discount_type: "percentage" | "amount" (optional)
        - advance: number (optional)
    """
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    data = _body()
    result = wizard.store.set_payment_terms(
        discount=data.get('discount'),
        discount_type=data.get('discount_type'),
        advance=data.get('advance'),
    )
    return _mutation_response(session_id, wizard, result)


@api_bp.route('/wizard/<session_id>/details', methods=['PUT'])
def set_details(session_id: str):
    """Urgency and notes."""
    wizard, error = _wizard_or_404(session_id)
    if error:
        return error
    data = _body()
    result = None
    if 'urgency' in data:
        result = wizard.store.set_urgency(data['urgency'])
    if 'notes' in data and (result is None or result.ok):
        result = wizard.store.set_notes(data['notes'])
    if result is None:
        return jsonify({'error': 'Nothing to update'}), 400
    return _mutation_response(session_id, wizard, result)


# ============================================================================
# Catalog
# ============================================================================


@api_bp.route('/catalog/categories', methods=['GET'])
def catalog_categories():
    return jsonify({'categories': get_garment_catalog().categories()}), 200


@api_bp.route('/catalog/items', methods=['GET'])
def catalog_items():
    catalog = get_garment_catalog()
    query = request.args.get('q')
    gender = request.args.get('gender')
    if query:
        items = catalog.search(query, gender=gender)
    else:
        items = catalog.items(request.args.get('category'), gender=gender)
    return jsonify({'items': [_dump(item) for item in items]}), 200


@api_bp.route('/catalog/resolve', methods=['GET'])
def catalog_resolve():
    definition = get_garment_catalog().resolve(
        request.args.get('category'),
        request.args.get('name'),
        request.args.get('gender'),
    )
    fields = get_measurement_resolver().fields_for(definition.code)
    return jsonify({
        'definition': _dump(definition),
        'fields': [_dump(f) for f in fields],
    }), 200


@api_bp.route('/catalog/schema/<code>', methods=['GET'])
def catalog_schema(code: str):
    try:
        code = GarmentTypeCode(code)
    except ValueError:
        return jsonify({'error': f'Unknown garment type {code!r}'}), 404
    fields = get_measurement_resolver().fields_for(code)
    return jsonify({'code': code.value, 'fields': [_dump(f) for f in fields]}), 200
