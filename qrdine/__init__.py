"""
                        QR Dine

Multi-tenant restaurant QR-ordering backend: table menus, orders,
payments, service requests and staff dashboards, with a hybrid
Mock/Real gateway architecture.
"""

__version__ = "1.0.0"
