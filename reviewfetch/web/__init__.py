# Web Layer
# =========
# FastAPI JSON API over the review dispatch core.
