"""CareCompass: patient care tracking API and client"""

__version__ = "0.1.0"
