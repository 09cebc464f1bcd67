"""
GenStudio - Image Generation Orchestration
===========================================

GenStudio submits image-generation jobs to a deliberately unreliable model
gateway and drives each job to a terminal state:

    AttemptController  ──>  GenerationGateway  ──>  ArtifactStore
    (retry / backoff /      (validate → overload     (durable record of
     cancellation)           gate → write)            completed jobs)

Quick Start:
    >>> from genstudio import GenStudio
    >>> async with GenStudio() as studio:
    ...     artifact = await studio.submit(owner_id=1, request=request)
"""

# =============================================================================
# Package Version
# =============================================================================
# Defined before the facade import: genstudio.api.app reads it at import time.
# =============================================================================
__version__ = "0.1.0"

# =============================================================================
# Package-Level Exports
# =============================================================================
# For specific components, import from submodules directly:
#   from genstudio.core.config import GenStudioConfig
#   from genstudio.orchestration import AttemptController
#   from genstudio.gateway import GenerationGateway
# =============================================================================
from genstudio.facade import GenStudio

__all__ = ["GenStudio", "__version__"]
