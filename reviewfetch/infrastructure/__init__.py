# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - stores/: App Store Connect and Google Play review APIs
# - credentials/: Per-store API keys from env or Credentials.json
# - persistence/: JSON app directory
# - export/: CSV export with pandas
# - config/: Environment and settings management
#
# This layer can be replaced entirely without affecting the domain layer.
