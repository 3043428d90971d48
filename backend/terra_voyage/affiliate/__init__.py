"""Affiliate partners, tracked links, commissions and booking redirects."""
