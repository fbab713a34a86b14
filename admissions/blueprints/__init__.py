"""
Admissions Portal
Blueprint registry.
"""
