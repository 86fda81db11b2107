"""
CityFix services: report, user and log services coordinated over a topic broker.
"""

__version__ = "1.0.0"
