"""pomanip - POM manipulation for multi-module Maven builds.

@QK
"""

__version__ = "0.1.0"
