"""
Trade Room backend: two-party card trade negotiation service.
"""
