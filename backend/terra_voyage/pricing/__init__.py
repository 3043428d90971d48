"""Flight and hotel price search, price-history cache and price alerts."""
