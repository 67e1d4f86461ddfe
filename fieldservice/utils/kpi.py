"""
KPI aggregation

Computes the business metrics shown on the KPI dashboard for a reporting
period (day, week, month, quarter, year, all). Each period is compared with
the window of equal length immediately before it.

A metric is a plain dict::

    {'id': 'total_revenue', 'name': 'Total Revenue', 'category': 'revenue',
     'value': 1250.0, 'unit': 'currency', 'previous_value': 900.0,
     'change': 350.0, 'change_percent': 38.9, 'trend': 'up', ...}

Optional keys (previous_value, change, change_percent, trend, target,
target_progress, description) are only present when they apply.

Several figures (profit margin, acquisition cost, retention, all efficiency
and quality metrics) are fixed placeholders until cost, marketing and
satisfaction data are tracked. They carry targets so the dashboard can
colour them.
"""
from datetime import datetime, timedelta, timezone
import logging

from dateutil.relativedelta import relativedelta
from sqlalchemy import func

from fieldservice import db
from fieldservice.models.client import Client
from fieldservice.models.estimate import Estimate
from fieldservice.models.invoice import Invoice
from fieldservice.models.job import Job
from fieldservice.models.lead import Lead
from fieldservice.utils.helpers import ensure_utc, utcnow

logger = logging.getLogger(__name__)

PERIODS = ('day', 'week', 'month', 'quarter', 'year', 'all')

# A change_percent within +/- this many points is 'stable'
TREND_THRESHOLD_PERCENT = 1.0

ALL_TIME_START = datetime(2000, 1, 1, tzinfo=timezone.utc)
ACTIVE_JOB_STATUSES = ('scheduled', 'in_progress')


class InvalidPeriod(ValueError):
    pass


def get_period_date_range(period, now=None):
    """Return (start, end) for a period, ending now"""
    end = ensure_utc(now) if now else utcnow()

    if period == 'day':
        start = end.replace(hour=0, minute=0, second=0, microsecond=0)
    elif period == 'week':
        start = end - timedelta(days=7)
    elif period == 'month':
        start = end - relativedelta(months=1)
    elif period == 'quarter':
        start = end - relativedelta(months=3)
    elif period == 'year':
        start = end - relativedelta(years=1)
    elif period == 'all':
        start = ALL_TIME_START
    else:
        raise InvalidPeriod(f"Invalid period '{period}'. Expected one of: {', '.join(PERIODS)}")

    return start, end


def get_previous_period_range(start, end):
    """The window of equal length ending where the current one starts"""
    return start - (end - start), start


def calculate_trend(current, previous):
    """Trend direction and change between two values"""
    change = current - previous
    change_percent = (change / previous) * 100 if previous != 0 else 0.0

    trend = 'stable'
    if abs(change_percent) > TREND_THRESHOLD_PERCENT:
        trend = 'up' if change_percent > 0 else 'down'

    return {'trend': trend, 'change': change, 'change_percent': change_percent}


def percentage(numerator, denominator):
    return (numerator / denominator) * 100 if denominator else 0.0


def build_metric(metric_id, name, category, value, unit, description=None,
                 target=None, track_progress=False, previous_value=None, trend=None):
    metric = {
        'id': metric_id,
        'name': name,
        'category': category,
        'value': value,
        'unit': unit,
    }
    if previous_value is not None:
        metric['previous_value'] = previous_value
    if trend:
        metric.update(trend)
    if target is not None:
        metric['target'] = target
        if track_progress:
            metric['target_progress'] = percentage(value, target)
    if description:
        metric['description'] = description
    return metric


def _job_sums(start, end, include_end=True):
    """(revenue, paid, count) for jobs created in the window"""
    upper = Job.created_at <= end if include_end else Job.created_at < end
    revenue, paid, count = db.session.query(
        func.coalesce(func.sum(Job.total), 0),
        func.coalesce(func.sum(Job.amount_paid), 0),
        func.count(Job.id)
    ).filter(Job.created_at >= start, upper).one()
    return float(revenue), float(paid), count


def calculate_revenue_kpis(period, now=None):
    start, end = get_period_date_range(period, now)
    prev_start, prev_end = get_previous_period_range(start, end)

    total_revenue, total_paid, job_count = _job_sums(start, end)
    prev_revenue, _, prev_job_count = _job_sums(prev_start, prev_end, include_end=False)

    revenue_trend = calculate_trend(total_revenue, prev_revenue)

    average_job_value = total_revenue / job_count if job_count else 0.0
    prev_average_job_value = prev_revenue / prev_job_count if prev_job_count else 0.0
    average_job_trend = calculate_trend(average_job_value, prev_average_job_value)

    collection_rate = percentage(total_paid, total_revenue)

    return {
        'total_revenue': build_metric(
            'total_revenue', 'Total Revenue', 'revenue', total_revenue, 'currency',
            'Total revenue from all jobs', previous_value=prev_revenue, trend=revenue_trend),
        'average_job_value': build_metric(
            'avg_job_value', 'Average Job Value', 'revenue', average_job_value, 'currency',
            'Average value per job', previous_value=prev_average_job_value, trend=average_job_trend),
        'revenue_growth': build_metric(
            'revenue_growth', 'Revenue Growth', 'revenue', revenue_trend['change_percent'], 'percentage',
            'Revenue growth vs previous period'),
        'monthly_recurring_revenue': build_metric(
            'mrr', 'Monthly Recurring Revenue', 'revenue', total_revenue / 12, 'currency',
            'Estimated monthly recurring revenue'),
        'total_paid': build_metric(
            'total_paid', 'Total Paid', 'revenue', total_paid, 'currency',
            'Total payments received'),
        'total_outstanding': build_metric(
            'total_outstanding', 'Total Outstanding', 'revenue', total_revenue - total_paid, 'currency',
            'Total unpaid amount'),
        'payment_collection_rate': build_metric(
            'collection_rate', 'Collection Rate', 'revenue', collection_rate, 'percentage',
            'Percentage of revenue collected', target=90, track_progress=True),
        # Needs payment dates per invoice
        'average_days_to_payment': build_metric(
            'avg_days_payment', 'Avg Days to Payment', 'revenue', 30, 'days',
            'Average days from invoice to payment', target=30),
        # Needs cost data
        'gross_profit': build_metric(
            'gross_profit', 'Gross Profit', 'revenue', total_revenue * 0.7, 'currency',
            'Total revenue minus direct costs'),
        'net_profit': build_metric(
            'net_profit', 'Net Profit', 'revenue', total_revenue * 0.3, 'currency',
            'Profit after all expenses'),
        'profit_margin': build_metric(
            'profit_margin', 'Profit Margin', 'revenue', 30, 'percentage',
            'Net profit as percentage of revenue', target=35),
    }


def calculate_job_kpis(period, now=None):
    start, end = get_period_date_range(period, now)

    counts = dict(
        db.session.query(Job.status, func.count(Job.id))
        .filter(Job.created_at >= start, Job.created_at <= end)
        .group_by(Job.status)
        .all()
    )

    total_jobs = sum(counts.values())
    completed_jobs = counts.get('completed', 0)
    active_jobs = sum(counts.get(status, 0) for status in ACTIVE_JOB_STATUSES)
    quotes = counts.get('quote', 0)
    cancelled = counts.get('cancelled', 0)

    completion_rate = percentage(completed_jobs, total_jobs)
    cancellation_rate = percentage(cancelled, total_jobs)
    conversion_rate = percentage(total_jobs - quotes, total_jobs)

    days_in_period = (end - start).total_seconds() / 86400
    jobs_per_week = total_jobs / (days_in_period / 7) if days_in_period > 0 else 0.0
    jobs_per_month = total_jobs / (days_in_period / 30) if days_in_period > 0 else 0.0

    return {
        'total_jobs': build_metric(
            'total_jobs', 'Total Jobs', 'jobs', total_jobs, 'number',
            'Total number of jobs created'),
        'active_jobs': build_metric(
            'active_jobs', 'Active Jobs', 'jobs', active_jobs, 'number',
            'Jobs currently in progress or scheduled'),
        'completed_jobs': build_metric(
            'completed_jobs', 'Completed Jobs', 'jobs', completed_jobs, 'number',
            'Successfully completed jobs'),
        'job_completion_rate': build_metric(
            'completion_rate', 'Completion Rate', 'jobs', completion_rate, 'percentage',
            'Percentage of jobs completed', target=85, track_progress=True),
        # Needs time tracking rolled up per job
        'average_job_duration': build_metric(
            'avg_duration', 'Avg Job Duration', 'jobs', 3, 'days',
            'Average days from start to completion', target=2.5),
        'jobs_per_week': build_metric(
            'jobs_per_week', 'Jobs Per Week', 'jobs', jobs_per_week, 'number',
            'Average jobs per week'),
        'jobs_per_month': build_metric(
            'jobs_per_month', 'Jobs Per Month', 'jobs', jobs_per_month, 'number',
            'Average jobs per month'),
        'quotes_converted': build_metric(
            'quotes_converted', 'Quotes Converted', 'jobs', total_jobs - quotes, 'number',
            'Number of quotes converted to jobs'),
        'quote_conversion_rate': build_metric(
            'quote_conversion_rate', 'Quote Conversion Rate', 'jobs', conversion_rate, 'percentage',
            'Percentage of quotes converted', target=70, track_progress=True),
        'cancelled_jobs': build_metric(
            'cancelled_jobs', 'Cancelled Jobs', 'jobs', cancelled, 'number',
            'Number of cancelled jobs'),
        'cancellation_rate': build_metric(
            'cancellation_rate', 'Cancellation Rate', 'jobs', cancellation_rate, 'percentage',
            'Percentage of jobs cancelled', target=5),
    }


def calculate_client_kpis(period, now=None):
    start, end = get_period_date_range(period, now)
    prev_start, prev_end = get_previous_period_range(start, end)

    total_clients = Client.query.count()
    new_clients = Client.query.filter(Client.created_at >= start, Client.created_at <= end).count()
    prev_clients = Client.query.filter(Client.created_at >= prev_start, Client.created_at < prev_end).count()

    # Job counts per client across all time
    job_counts = (
        db.session.query(Job.client_id, func.count(Job.id))
        .group_by(Job.client_id)
        .all()
    )
    active_clients = len(job_counts)
    repeat_clients = sum(1 for _, count in job_counts if count > 1)
    total_revenue = float(db.session.query(func.coalesce(func.sum(Job.total), 0)).scalar())

    repeat_rate = percentage(repeat_clients, total_clients)
    average_revenue_per_client = total_revenue / total_clients if total_clients else 0.0
    client_growth = percentage(new_clients, prev_clients)

    return {
        'total_clients': build_metric(
            'total_clients', 'Total Clients', 'clients', total_clients, 'number',
            'Total number of clients'),
        'active_clients': build_metric(
            'active_clients', 'Active Clients', 'clients', active_clients, 'number',
            'Clients with at least one job'),
        'new_clients': build_metric(
            'new_clients', 'New Clients', 'clients', new_clients, 'number',
            'Clients added this period'),
        'client_growth_rate': build_metric(
            'client_growth', 'Client Growth Rate', 'clients', client_growth, 'percentage',
            'Client growth vs previous period', target=10),
        'client_lifetime_value': build_metric(
            'client_ltv', 'Client Lifetime Value', 'clients', average_revenue_per_client * 3, 'currency',
            'Average lifetime value per client'),
        'average_revenue_per_client': build_metric(
            'avg_revenue_client', 'Avg Revenue Per Client', 'clients', average_revenue_per_client, 'currency',
            'Average revenue generated per client'),
        'repeat_client_rate': build_metric(
            'repeat_rate', 'Repeat Client Rate', 'clients', repeat_rate, 'percentage',
            'Percentage of repeat customers', target=60, track_progress=True),
        # Needs historical retention data
        'client_retention_rate': build_metric(
            'retention_rate', 'Client Retention Rate', 'clients', 85, 'percentage',
            'Percentage of clients retained', target=90),
        # Needs marketing spend
        'client_acquisition_cost': build_metric(
            'cac', 'Client Acquisition Cost', 'clients', 150, 'currency',
            'Cost to acquire new client', target=100),
        'lead_to_client_conversion_rate': build_metric(
            'lead_conversion', 'Lead Conversion Rate', 'clients', 40, 'percentage',
            'Leads converted to clients', target=50),
    }


# key, id, name, value, target, unit
EFFICIENCY_PLACEHOLDERS = [
    ('average_time_per_job', 'avg_time_job', 'Avg Time Per Job', 4, 3.5, 'hours'),
    ('labor_efficiency_rate', 'labor_efficiency', 'Labor Efficiency', 85, 90, 'percentage'),
    ('scheduling_efficiency', 'scheduling_efficiency', 'Scheduling Efficiency', 90, 95, 'percentage'),
    ('crew_utilization_rate', 'crew_utilization', 'Crew Utilization', 75, 85, 'percentage'),
    ('equipment_utilization_rate', 'equipment_utilization', 'Equipment Utilization', 70, 80, 'percentage'),
    ('material_waste_rate', 'material_waste', 'Material Waste Rate', 5, 3, 'percentage'),
    ('jobs_per_technician', 'jobs_per_tech', 'Jobs Per Technician', 15, 20, 'number'),
    ('revenue_per_labor_hour', 'revenue_per_hour', 'Revenue Per Labor Hour', 75, 100, 'currency'),
    ('overtime_rate', 'overtime_rate', 'Overtime Rate', 10, 5, 'percentage'),
]

QUALITY_PLACEHOLDERS = [
    ('customer_satisfaction_score', 'csat', 'Customer Satisfaction', 4.5, 4.7, 'number'),
    ('net_promoter_score', 'nps', 'Net Promoter Score', 45, 50, 'number'),
    ('first_time_fix_rate', 'first_fix_rate', 'First-Time Fix Rate', 90, 95, 'percentage'),
    ('rework_rate', 'rework_rate', 'Rework Rate', 5, 2, 'percentage'),
    ('callback_rate', 'callback_rate', 'Callback Rate', 3, 1, 'percentage'),
    ('warranty_claim_rate', 'warranty_rate', 'Warranty Claim Rate', 2, 1, 'percentage'),
    ('response_time', 'response_time', 'Response Time', 2, 1, 'hours'),
    ('email_response_rate', 'email_response_rate', 'Email Response Rate', 95, 98, 'percentage'),
    ('appointment_keep_rate', 'appointment_keep_rate', 'Appointment Keep Rate', 92, 95, 'percentage'),
]


def _placeholder_metrics(category, rows):
    return {
        key: build_metric(metric_id, name, category, value, unit, target=target)
        for key, metric_id, name, value, target, unit in rows
    }


def get_efficiency_kpis():
    return _placeholder_metrics('efficiency', EFFICIENCY_PLACEHOLDERS)


def get_quality_kpis():
    return _placeholder_metrics('quality', QUALITY_PLACEHOLDERS)


def summarize_kpis(kpis):
    """Counts against targets and the mean change across trended metrics"""
    all_metrics = [metric for category in kpis.values() for metric in category.values()]

    with_targets = [m for m in all_metrics if m.get('target') is not None]
    above_target = sum(1 for m in with_targets if m['value'] >= m['target'])

    with_change = [m for m in all_metrics if m.get('change_percent') is not None]
    average_growth = (
        sum(m['change_percent'] for m in with_change) / len(with_change)
        if with_change else 0.0
    )

    return {
        'total_metrics': len(all_metrics),
        'metrics_above_target': above_target,
        'metrics_below_target': len(with_targets) - above_target,
        'average_growth': average_growth,
    }


def get_all_kpis(period='month', now=None):
    """Full KPI dashboard for a period"""
    now = ensure_utc(now) if now else utcnow()
    start, end = get_period_date_range(period, now)
    logger.info(f"Computing KPI dashboard for '{period}' ({start.isoformat()} - {end.isoformat()})")

    kpis = {
        'revenue': calculate_revenue_kpis(period, now),
        'jobs': calculate_job_kpis(period, now),
        'clients': calculate_client_kpis(period, now),
        'efficiency': get_efficiency_kpis(),
        'quality': get_quality_kpis(),
    }

    return {
        'period': period,
        'start_date': start.isoformat(),
        'end_date': end.isoformat(),
        'kpis': kpis,
        'summary': summarize_kpis(kpis),
    }


def get_operational_snapshot(now=None):
    """Headline counts for the admin dashboard tiles"""
    now = ensure_utc(now) if now else utcnow()
    today = now.date()

    sent_invoices = Invoice.query.filter_by(status='sent')
    outstanding_amount = (
        db.session.query(func.coalesce(func.sum(Invoice.total), 0))
        .filter(Invoice.status == 'sent')
        .scalar()
    )

    return {
        'active_jobs': Job.query.filter(Job.status.in_(ACTIVE_JOB_STATUSES)).count(),
        'jobs_today': Job.query.filter(Job.service_date >= today).count(),
        'jobs_this_week': Job.query.filter(Job.service_date >= today - timedelta(days=7)).count(),
        'unpaid_invoices': sent_invoices.count(),
        'outstanding_amount': float(outstanding_amount),
        'pending_estimates': Estimate.query.filter_by(status='sent').count(),
        'new_leads_7': Lead.query.filter(Lead.created_at >= now - timedelta(days=7)).count(),
        'new_leads_30': Lead.query.filter(Lead.created_at >= now - timedelta(days=30)).count(),
    }
