"""
PriceWatch - Store price survey scraper.

Runs a price/availability lookup for every (store, product) pair of a
job, with paced sequential scheduling, retries and live progress.
"""

__version__ = "0.1.0"
__app_name__ = "pricewatch"
