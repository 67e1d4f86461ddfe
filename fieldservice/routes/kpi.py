import logging

from flask import Blueprint, request, jsonify, current_app
from fieldservice.utils.helpers import error_response, utcnow
from fieldservice.utils.kpi import (
    InvalidPeriod, get_all_kpis, get_period_date_range, calculate_revenue_kpis,
    calculate_job_kpis, calculate_client_kpis, get_operational_snapshot
)

bp = Blueprint('kpi', __name__)
logger = logging.getLogger(__name__)

def _period():
    return request.args.get('period') or current_app.config.get('KPI_DEFAULT_PERIOD', 'month')

def _category_response(period, calculate):
    now = utcnow()
    start, end = get_period_date_range(period, now)
    return jsonify({
        'period': period,
        'start_date': start.isoformat(),
        'end_date': end.isoformat(),
        'kpis': calculate(period, now)
    }), 200

@bp.route('/dashboard', methods=['GET'])
def get_dashboard():
    """
    Full KPI dashboard
    ---
    tags:
      - KPI
    parameters:
      - in: query
        name: period
        schema:
          type: string
          enum: [day, week, month, quarter, year, all]
          default: month
        description: Aggregation window ending now
    responses:
      200:
        description: KPI metrics grouped by category, with a summary
        content:
          application/json:
            schema:
              type: object
              properties:
                period:
                  type: string
                start_date:
                  type: string
                  format: date-time
                end_date:
                  type: string
                  format: date-time
                kpis:
                  type: object
                  properties:
                    revenue:
                      type: object
                    jobs:
                      type: object
                    clients:
                      type: object
                    efficiency:
                      type: object
                    quality:
                      type: object
                summary:
                  type: object
                  properties:
                    total_metrics:
                      type: integer
                    metrics_above_target:
                      type: integer
                    metrics_below_target:
                      type: integer
                    average_growth:
                      type: number
      400:
        description: Unknown period
      500:
        description: KPI computation failed
    """
    try:
        return jsonify(get_all_kpis(_period())), 200
    except InvalidPeriod as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Error computing KPI dashboard: {e}")
        return error_response('Failed to fetch KPI data', 500)

@bp.route('/revenue', methods=['GET'])
def get_revenue_kpis():
    """
    Revenue KPIs for a period
    ---
    tags:
      - KPI
    parameters:
      - in: query
        name: period
        schema:
          type: string
          enum: [day, week, month, quarter, year, all]
    responses:
      200:
        description: Revenue metrics
      400:
        description: Unknown period
    """
    try:
        return _category_response(_period(), calculate_revenue_kpis)
    except InvalidPeriod as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Error computing revenue KPIs: {e}")
        return error_response('Failed to fetch KPI data', 500)

@bp.route('/jobs', methods=['GET'])
def get_job_kpis():
    """Job KPIs for a period"""
    try:
        return _category_response(_period(), calculate_job_kpis)
    except InvalidPeriod as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Error computing job KPIs: {e}")
        return error_response('Failed to fetch KPI data', 500)

@bp.route('/clients', methods=['GET'])
def get_client_kpis():
    """Client KPIs for a period"""
    try:
        return _category_response(_period(), calculate_client_kpis)
    except InvalidPeriod as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Error computing client KPIs: {e}")
        return error_response('Failed to fetch KPI data', 500)

@bp.route('/snapshot', methods=['GET'])
def get_snapshot():
    """Operational counts for the dashboard tiles"""
    try:
        return jsonify(get_operational_snapshot()), 200
    except Exception as e:
        logger.error(f"Error computing operational snapshot: {e}")
        return error_response('Failed to fetch KPI data', 500)
