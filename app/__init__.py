"""
                Santo Dilema Storefront

Ordering backend for a single dark kitchen: menu, order drafts,
checkout pricing with combo and coupon rules, and order intake,
stored as JSON documents on disk (development) or in Redis (production).

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
