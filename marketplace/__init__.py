"""
Marketplace Auth Service
Passwordless authentication and vendor onboarding for the B2B marketplace
"""

__version__ = "1.0.0"
