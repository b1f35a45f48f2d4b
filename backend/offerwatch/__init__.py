"""OfferWatch: classified-ad scraping with incremental new-offer detection."""

__version__ = "0.1.0"
