# Application Layer
# =================
# Orchestration across stores: query resolution, dispatch and fan-out.

from .omni_service import DEFAULT_FACTORIES, OmniReviewService, VendorSlot

__all__ = ["DEFAULT_FACTORIES", "OmniReviewService", "VendorSlot"]
