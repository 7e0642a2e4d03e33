"""
Vendor Scraper Modules

Each module provides a BaseScraper subclass for one booking site, plus
its pure build_url and parse_* functions.
"""

from .etstur import EtsturScraper
from .obilet import ObiletScraper
from .hotelscom import HotelsComScraper
from .setur import SeturScraper
from .jollytur import JollyTurScraper
from .touristica import TouristicaScraper
from .tatilsepeti import TatilsepetiScraper
from .tatilbudur import TatilBudurScraper
from .enuygun import EnuygunScraper

__all__ = [
    "EtsturScraper",
    "ObiletScraper",
    "HotelsComScraper",
    "SeturScraper",
    "JollyTurScraper",
    "TouristicaScraper",
    "TatilsepetiScraper",
    "TatilBudurScraper",
    "EnuygunScraper",
]
