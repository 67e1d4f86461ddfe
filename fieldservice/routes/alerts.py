from flask import Blueprint, request, jsonify
from fieldservice import db
from fieldservice.models.alert import Alert, ALERT_TYPES, ALERT_SEVERITIES
from fieldservice.utils.helpers import error_response
from fieldservice.utils.email_alerts import resolve_alert

bp = Blueprint('alerts', __name__)

@bp.route('/', methods=['GET'])
def get_alerts():
    """
    Get alerts, newest first
    ---
    tags:
      - Alerts
    parameters:
      - in: query
        name: type
        schema:
          type: string
          enum: [lead, billing, scheduling, support, security]
      - in: query
        name: severity
        schema:
          type: string
          enum: [low, medium, high, urgent]
      - in: query
        name: resolved
        schema:
          type: string
          default: 'false'
      - in: query
        name: limit
        schema:
          type: integer
          default: 50
    responses:
      200:
        description: List of alerts
    """
    alert_type = request.args.get('type')
    severity = request.args.get('severity')
    resolved = request.args.get('resolved', 'false')
    limit = request.args.get('limit', 50, type=int)

    if alert_type and alert_type not in ALERT_TYPES:
        return error_response('Invalid alert type')
    if severity and severity not in ALERT_SEVERITIES:
        return error_response('Invalid severity')

    query = Alert.query
    if alert_type:
        query = query.filter_by(type=alert_type)
    if severity:
        query = query.filter_by(severity=severity)
    if resolved.lower() != 'all':
        query = query.filter_by(resolved=resolved.lower() == 'true')

    alerts = query.order_by(Alert.created_at.desc()).limit(limit).all()
    return jsonify({
        'alerts': [alert.to_dict() for alert in alerts],
        'total': len(alerts)
    }), 200

@bp.route('/<uuid:alert_id>', methods=['GET'])
def get_alert(alert_id):
    """Get alert by ID"""
    alert = Alert.query.get_or_404(alert_id)
    return jsonify(alert.to_dict()), 200

@bp.route('/<uuid:alert_id>/resolve', methods=['POST'])
def resolve(alert_id):
    """Mark an alert resolved"""
    alert = Alert.query.get_or_404(alert_id)
    data = request.get_json(silent=True) or {}

    if alert.resolved:
        return error_response('Alert already resolved', 409)

    resolve_alert(alert, data.get('resolution_notes'))
    db.session.commit()
    return jsonify(alert.to_dict()), 200
