"""
Marketplace order service: checkout, seller-scoped orders and fulfillment
"""
