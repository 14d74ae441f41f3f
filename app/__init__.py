"""
                Warung Ordering

Restaurant ordering backend: menu, cart and dine-in/takeaway checkout,
with a remote-preferring data layer that falls back to a local mirror
when the hosted database is unreachable or unconfigured.

Author: Khalil_Bannouri
Version: 4.0.0
License: MIT
"""

__version__ = "4.0.0"
__author__ = "Khalil_Bannouri"
