import logging

from flask import Blueprint, request, jsonify
from fieldservice import db
from fieldservice.models.email_message import EmailMessage, EMAIL_CATEGORIES
from fieldservice.utils.helpers import error_response, paginated_response, parse_datetime
from fieldservice.utils.email_categorization import categorize_email_with_keywords
from fieldservice.utils.email_alerts import (
    generate_alerts_for_email, INSIGHT_CATEGORIES, INSIGHT_PRIORITIES
)

bp = Blueprint('emails', __name__)
logger = logging.getLogger(__name__)

def _apply_categorization(email_message):
    result = categorize_email_with_keywords(
        subject=email_message.subject,
        body_text=email_message.body_text,
        body_html=email_message.body_html
    )
    email_message.category = result['category']
    email_message.confidence = result['confidence']
    email_message.extracted_data = result['extracted_data']
    email_message.reasoning = result['reasoning']
    return result

@bp.route('/', methods=['POST'])
def ingest_email():
    """
    Ingest an email message
    ---
    tags:
      - Emails
    requestBody:
      required: true
      content:
        application/json:
          schema:
            type: object
            properties:
              external_id:
                type: string
                description: Provider message id, used to skip duplicates
              sender:
                type: string
              subject:
                type: string
              body_text:
                type: string
              body_html:
                type: string
              received_at:
                type: string
                format: date-time
              insight:
                type: object
                description: Structured analysis of the message, raises an alert when action is required
                properties:
                  category:
                    type: string
                  priority:
                    type: string
                    enum: [low, medium, high, urgent]
                  is_action_required:
                    type: boolean
                  summary:
                    type: string
                  details:
                    type: object
    responses:
      201:
        description: Email stored and categorized, with any alerts raised
      400:
        description: Empty message or invalid insight
      409:
        description: Email already ingested
    """
    data = request.get_json() or {}

    if not any(data.get(field) for field in ('subject', 'body_text', 'body_html')):
        return error_response('Email must have a subject or body')

    external_id = data.get('external_id')
    if external_id and EmailMessage.query.filter_by(external_id=external_id).first():
        return error_response('Email already ingested', 409)

    try:
        received_at = parse_datetime(data.get('received_at'))
    except ValueError:
        return error_response('Invalid received_at')

    insight = data.get('insight') or {}
    if insight:
        if insight.get('category') not in INSIGHT_CATEGORIES:
            return error_response(f"Invalid insight category. Must be one of: {', '.join(INSIGHT_CATEGORIES)}")
        if insight.get('priority') and insight['priority'] not in INSIGHT_PRIORITIES:
            return error_response(f"Invalid insight priority. Must be one of: {', '.join(INSIGHT_PRIORITIES)}")

    email_message = EmailMessage(
        external_id=external_id,
        sender=data.get('sender'),
        subject=data.get('subject'),
        body_text=data.get('body_text'),
        body_html=data.get('body_html'),
        insight_category=insight.get('category'),
        priority=insight.get('priority'),
        is_action_required=bool(insight.get('is_action_required', False)),
        summary=insight.get('summary'),
        insight_details=insight.get('details') or {},
        is_read=False
    )
    if received_at:
        email_message.received_at = received_at

    _apply_categorization(email_message)
    db.session.add(email_message)

    alerts = generate_alerts_for_email(email_message)
    db.session.commit()

    logger.info(f"Ingested email {email_message.id} as {email_message.category} ({len(alerts)} alerts)")

    email_dict = email_message.to_dict()
    email_dict['alerts'] = [alert.to_dict() for alert in alerts]
    return jsonify(email_dict), 201

@bp.route('/', methods=['GET'])
def get_emails():
    """Get emails, optionally by category"""
    category = request.args.get('category')
    is_read = request.args.get('is_read')

    query = EmailMessage.query
    if category:
        query = query.filter_by(category=category)
    if is_read is not None:
        query = query.filter_by(is_read=is_read.lower() == 'true')

    return paginated_response(query.order_by(EmailMessage.received_at.desc()), 'emails')

@bp.route('/<uuid:email_id>', methods=['GET'])
def get_email(email_id):
    """Get email by ID and mark it read"""
    email_message = EmailMessage.query.get_or_404(email_id)
    if not email_message.is_read:
        email_message.is_read = True
        db.session.commit()

    email_dict = email_message.to_dict()
    email_dict['body_html'] = email_message.body_html
    email_dict['alerts'] = [alert.to_dict() for alert in email_message.alerts]
    return jsonify(email_dict), 200

@bp.route('/<uuid:email_id>/category', methods=['PUT'])
def recategorize_email(email_id):
    """Set the category by hand, or re-run keyword categorization when none is given"""
    email_message = EmailMessage.query.get_or_404(email_id)
    data = request.get_json(silent=True) or {}

    category = data.get('category')
    if category:
        if category not in EMAIL_CATEGORIES:
            return error_response(f"Invalid category. Must be one of: {', '.join(EMAIL_CATEGORIES)}")
        email_message.category = category
        email_message.confidence = 1.0
        email_message.reasoning = 'Manually categorized'
    else:
        _apply_categorization(email_message)

    db.session.commit()
    return jsonify(email_message.to_dict()), 200
