import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flasgger import Swagger
from sqlalchemy.exc import SQLAlchemyError

db = SQLAlchemy()
migrate = Migrate()
swagger = Swagger()

logger = logging.getLogger(__name__)

def create_app(config_class=None):
    """Application factory pattern"""
    if config_class is None:
        from config import Config
        config_class = Config

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Swagger configuration
    app.config['SWAGGER'] = {
        'title': 'Field Service API Documentation',
        'uiversion': 3,
        'openapi': '3.0.0',
        'info': {
            'title': 'Field Service API',
            'description': 'Clients, leads, jobs, inventory, invoicing, time tracking and KPI dashboards',
            'version': '1.0.0',
        },
        'servers': [
            {
                'url': 'http://localhost:5000',
                'description': 'Development server'
            }
        ]
    }

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    swagger.init_app(app)

    # Configure CORS with allowed origins from config
    # If '*' is in the list, allow all origins (development)
    # Otherwise, use the specific origins (production)
    cors_origins = app.config.get('CORS_ALLOWED_ORIGINS', ['*'])
    CORS(app, resources={r"/api/*": {
        "origins": "*" if '*' in cors_origins else cors_origins,
        "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        "allow_headers": ["Content-Type", "Authorization"],
        "expose_headers": ["Content-Type"],
    }})

    # Load every model before mappers are configured
    from fieldservice import models  # noqa: F401

    # Register blueprints - one per resource
    from fieldservice.routes import (
        clients, properties, jobs, leads, materials, time_entries,
        invoices, estimates, emails, alerts, kpi
    )

    app.register_blueprint(clients.bp, url_prefix='/api/clients')
    app.register_blueprint(properties.bp, url_prefix='/api/properties')
    app.register_blueprint(jobs.bp, url_prefix='/api/jobs')
    app.register_blueprint(leads.bp, url_prefix='/api/leads')
    app.register_blueprint(materials.bp, url_prefix='/api/materials')
    app.register_blueprint(time_entries.bp, url_prefix='/api/time-entries')
    app.register_blueprint(invoices.bp, url_prefix='/api/invoices')
    app.register_blueprint(estimates.bp, url_prefix='/api/estimates')
    app.register_blueprint(emails.bp, url_prefix='/api/emails')
    app.register_blueprint(alerts.bp, url_prefix='/api/alerts')
    app.register_blueprint(kpi.bp, url_prefix='/api/kpi')

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        logger.error(f"Database error: {error}")
        return jsonify({'error': 'Database error'}), 500

    return app
