"""Stripe CLI webhook demo service"""
__version__ = "1.1.0"
