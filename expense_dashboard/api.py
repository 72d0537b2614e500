"""Flask JSON endpoints for tips and aggregated reports.

Run locally with::

    flask --app expense_dashboard.api run

Authentication and storage live with the hosted backend; these routes
only receive the expense list in the request body.
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify, request

from . import config
from .aggregation import aggregate_buckets, exclude_category
from .bucketing import bucket_expenses
from .ingestion import normalize_expenses
from .models import Granularity
from .tips_service import INVALID_EXPENSES_MESSAGE, TipsService

logger = logging.getLogger(__name__)


def create_app(service: Optional[TipsService] = None) -> Flask:
    config.configure_logging()
    app = Flask(__name__)
    app.config['TIPS_SERVICE'] = service or TipsService()

    @app.route('/api/ai-expense-tips', methods=['POST'])
    @app.route('/tips', methods=['POST'])
    def daily_tips():
        body = request.get_json(silent=True)
        status, payload = app.config['TIPS_SERVICE'].handle(body)
        return jsonify(payload), status

    @app.route('/api/reports/<granularity>', methods=['POST'])
    def period_report(granularity: str):
        try:
            granularity = Granularity.parse(granularity)
        except ValueError as exc:
            return jsonify({'error': str(exc)}), 400

        body = request.get_json(silent=True)
        rows = body.get('expenses') if isinstance(body, dict) else None
        if not isinstance(rows, list):
            return jsonify({'error': INVALID_EXPENSES_MESSAGE}), 400

        try:
            ingested = normalize_expenses(rows)
            expenses = ingested.expenses
            excluded_category = body.get('excludeCategory')
            if excluded_category:
                expenses = exclude_category(expenses, str(excluded_category))
            bucket_set = bucket_expenses(expenses, granularity)
            periods = []
            for bucket, aggregated in aggregate_buckets(bucket_set):
                entry = bucket.period.to_dict()
                entry.update(aggregated.to_dict())
                periods.append(entry)
        except Exception:
            logger.exception("Error building %s report", granularity.value)
            return jsonify({'error': 'Failed to build report'}), 500

        return jsonify({
            'granularity': granularity.value,
            'periods': periods,
            'excluded': len(bucket_set.excluded),
            'issues': ingested.issues,
        }), 200

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({'status': 'ok', 'ai': 'enabled' if config.ai_enabled() else 'disabled'}), 200

    return app
