# Review Fetch - App Store and Google Play Review Aggregation
# ============================================================
# One interface for reading and answering app reviews across stores,
# using Layered Architecture:
#
# ARCHITECTURE LAYERS:
# - Presentation:   CLI (reviewfetch.cli) and HTTP API (reviewfetch.web)
# - Application:    Query resolution and multi-store dispatch
# - Domain:         Review/app models, scoped ids, error taxonomy
# - Infrastructure: Store API clients, credentials, app directory, export
#
# Store clients can be added or replaced without touching the layers above.

__version__ = "0.1.0"
