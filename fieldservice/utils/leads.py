"""Lead prioritisation and per-source analytics"""
from collections import defaultdict

from fieldservice.utils.helpers import ensure_utc, utcnow


def calculate_urgency_score(lead, now=None):
    """
    Calculate urgency score for a lead
    Higher score = more urgent
    """
    now = ensure_utc(now) if now else utcnow()
    score = 0

    # New leads are urgent
    if lead.status == 'new':
        score += 50

    if lead.priority == 'urgent':
        score += 100
    elif lead.priority == 'high':
        score += 50
    elif lead.priority == 'medium':
        score += 25

    value = float(lead.estimated_value or 0)
    if value > 10000:
        score += 50
    elif value > 5000:
        score += 25

    # Recency - leads older than a day lose points
    created_at = ensure_utc(lead.created_at) or now
    hours_old = (now - created_at).total_seconds() / 3600
    if hours_old < 1:
        score += 50
    elif hours_old < 4:
        score += 30
    elif hours_old < 24:
        score += 10
    elif hours_old > 72:
        score -= 20

    if lead.source == 'phone':
        score += 20
    elif lead.source == 'walk_in':
        score += 30

    return score


def lead_source_analytics(leads):
    """Conversion statistics grouped by lead source"""
    groups = defaultdict(list)
    for lead in leads:
        groups[lead.source].append(lead)

    stats = []
    for source, source_leads in groups.items():
        total = len(source_leads)
        converted = [lead for lead in source_leads if lead.status == 'converted']

        valued = [float(lead.estimated_value) for lead in source_leads
                  if lead.estimated_value and lead.estimated_value > 0]
        avg_value = sum(valued) / len(valued) if valued else 0.0

        days_to_convert = []
        for lead in converted:
            converted_at = ensure_utc(lead.converted_at or lead.updated_at)
            created_at = ensure_utc(lead.created_at)
            if converted_at and created_at:
                days_to_convert.append((converted_at - created_at).total_seconds() / 86400)
        avg_days = sum(days_to_convert) / len(days_to_convert) if days_to_convert else 0.0

        stats.append({
            'source': source,
            'total': total,
            'converted': len(converted),
            'conversion_rate': (len(converted) / total) * 100 if total else 0.0,
            'avg_value': avg_value,
            'avg_time_to_conversion': avg_days,
        })

    return sorted(stats, key=lambda s: s['total'], reverse=True)
