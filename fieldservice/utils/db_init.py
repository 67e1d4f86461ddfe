"""
Database Initialization Utility

This module handles automatic creation of:
- PostgreSQL extensions
- Custom ENUM types
- All database tables

All operations are idempotent - they won't fail if objects already exist.
The PostgreSQL-specific steps are skipped on other dialects.
"""

from fieldservice import db
from fieldservice.models.job import JOB_PRIORITIES, JOB_STATUSES, PAYMENT_STATUSES
from fieldservice.models.lead import LEAD_SOURCES, LEAD_STATUSES, LEAD_PRIORITIES
from fieldservice.models.time_entry import TIME_ENTRY_STATUSES
from fieldservice.models.alert import ALERT_TYPES, ALERT_SEVERITIES
from sqlalchemy import text
import logging

logger = logging.getLogger(__name__)


ENUMS = [
    {'name': 'priority_enum', 'values': JOB_PRIORITIES},
    {'name': 'job_status_enum', 'values': JOB_STATUSES},
    {'name': 'payment_status_enum', 'values': PAYMENT_STATUSES},
    {'name': 'lead_source_enum', 'values': LEAD_SOURCES},
    {'name': 'lead_status_enum', 'values': LEAD_STATUSES},
    {'name': 'lead_priority_enum', 'values': LEAD_PRIORITIES},
    {'name': 'time_entry_status_enum', 'values': TIME_ENTRY_STATUSES},
    {'name': 'alert_type_enum', 'values': ALERT_TYPES},
    {'name': 'alert_severity_enum', 'values': ALERT_SEVERITIES},
]


def is_postgres():
    return db.engine.dialect.name == 'postgresql'


def create_postgres_extensions():
    """Create PostgreSQL extensions if they don't exist"""
    try:
        # Create uuid-ossp extension for UUID generation
        db.session.execute(text("CREATE EXTENSION IF NOT EXISTS \"uuid-ossp\""))
        db.session.commit()
        logger.info("PostgreSQL extensions created/verified successfully")
    except Exception as e:
        db.session.rollback()
        logger.warning(f"Could not create PostgreSQL extensions (may already exist): {e}")


def create_enums():
    """Create PostgreSQL ENUM types if they don't exist"""
    for enum_def in ENUMS:
        try:
            enum_name = enum_def['name']
            enum_values = "', '".join(enum_def['values'])

            # Use DO block to handle "already exists" gracefully
            query = f"""
            DO $$ BEGIN
                CREATE TYPE {enum_name} AS ENUM ('{enum_values}');
            EXCEPTION
                WHEN duplicate_object THEN null;
            END $$;
            """
            db.session.execute(text(query))
            db.session.commit()
            logger.info(f"ENUM {enum_name} created/verified successfully")
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Could not create ENUM {enum_def['name']} (may already exist): {e}")


def create_all_tables():
    """Create all database tables if they don't exist"""
    try:
        # Import all models so SQLAlchemy knows about them
        import fieldservice.models  # noqa: F401

        db.create_all()
        logger.info("All database tables created/verified successfully")
    except Exception as e:
        logger.error(f"Error creating tables: {e}")
        raise


def initialize_database():
    """
    Main initialization function that sets up the entire database.
    This function is idempotent and safe to call multiple times.
    """
    try:
        logger.info("Starting database initialization...")

        if is_postgres():
            create_postgres_extensions()
            create_enums()
        else:
            logger.info(f"Skipping PostgreSQL extensions and ENUM types on {db.engine.dialect.name}")

        create_all_tables()

        logger.info("Database initialization completed successfully!")
        return True
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        db.session.rollback()
        return False
