"""
HVAC Billing

Customer, technician and service-order records for an HVAC service
business, with GST invoice computation and PDF invoice rendering.
"""

__version__ = "0.1.0"
