import hmac
from flask import Blueprint, request, jsonify, Response, current_app

bp = Blueprint('admin', __name__, url_prefix='/api/admin')


@bp.before_request
def require_admin_token():
    """Admin routes need the X-Admin-Token header; all are refused while no token is configured."""
    expected = current_app.config.get('ADMIN_TOKEN')
    provided = request.headers.get('X-Admin-Token', '')
    if not expected or not hmac.compare_digest(provided, expected):
        return jsonify({'error': 'Admin access required'}), 403


# --- Groups ---

@bp.route('/groups', methods=['GET'])
def list_groups():
    groups = current_app.catalog.list_groups()
    return jsonify({
        'groups': [g.to_dict(reveal_secret=True) for g in groups],
        'count': len(groups)
    })


@bp.route('/groups', methods=['POST'])
def add_group():
    data = request.get_json(silent=True) or {}
    result = current_app.catalog.add_group(data.get('groupNumber'), data.get('secretCode'))
    if not result.ok:
        return jsonify({'error': result.message}), 409

    return jsonify({
        'message': result.message,
        'group': result.value.to_dict()
    }), 201


# --- Titles ---

@bp.route('/titles', methods=['GET'])
def list_titles():
    titles = current_app.catalog.list_titles()
    return jsonify({
        'titles': [t.to_dict() for t in titles],
        'count': len(titles)
    })


@bp.route('/titles', methods=['POST'])
def add_title():
    data = request.get_json(silent=True) or {}
    result = current_app.catalog.add_title(data.get('title'))
    if not result.ok:
        return jsonify({'error': result.message}), 409

    return jsonify({
        'message': result.message,
        'title': result.value.to_dict()
    }), 201


# --- Teams ---

@bp.route('/teams', methods=['GET'])
def list_teams():
    teams = current_app.catalog.list_teams()
    return jsonify({
        'teams': [t.to_dict() for t in teams],
        'count': len(teams)
    })


# --- Live updates (SSE) ---

@bp.route('/events')
def events():
    """Stream ledger announcements to the admin dashboard."""
    if current_app.redis is None:
        return jsonify({'error': 'Live updates unavailable'}), 503

    announcer = current_app.announcer
    redis_url = current_app.config['REDIS_URL']

    def generate():
        yield "data: {\"type\":\"connected\"}\n\n"
        for payload in announcer.listen(redis_url):
            if payload is not None:
                yield f"data: {payload}\n\n"
            else:
                yield ": keepalive\n\n"

    return Response(generate(), mimetype='text/event-stream', headers={
        'Cache-Control': 'no-cache',
        'X-Accel-Buffering': 'no'
    })
