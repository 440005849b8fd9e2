"""
Integrations with external services (payments, error tracking).
"""
