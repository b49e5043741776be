"""StallPOS — real-time order pipeline for a food stall.

Counter staff place orders, kitchen and delivery staff move them through
preparation states, admins manage the product catalog. Every change fans
out to connected dashboards over WebSockets.
"""

__version__ = "0.1.0"
