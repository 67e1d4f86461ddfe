"""
SQLAlchemy Models Package

This package contains all database models organized by domain:
- Customers: Client, Property, Lead
- Work: Job, JobLineItem, TimeEntry
- Billing: Estimate, Invoice, BillingEvent
- Inventory: Material
- Communication: EmailMessage, Alert
"""

# Customers
from fieldservice.models.client import Client
from fieldservice.models.property import Property
from fieldservice.models.lead import Lead

# Work
from fieldservice.models.job import Job, JobLineItem
from fieldservice.models.time_entry import TimeEntry

# Billing
from fieldservice.models.estimate import Estimate
from fieldservice.models.invoice import Invoice
from fieldservice.models.billing_event import BillingEvent

# Inventory
from fieldservice.models.material import Material

# Communication
from fieldservice.models.email_message import EmailMessage
from fieldservice.models.alert import Alert

__all__ = [
    # Customers
    'Client',
    'Property',
    'Lead',
    # Work
    'Job',
    'JobLineItem',
    'TimeEntry',
    # Billing
    'Estimate',
    'Invoice',
    'BillingEvent',
    # Inventory
    'Material',
    # Communication
    'EmailMessage',
    'Alert',
]
