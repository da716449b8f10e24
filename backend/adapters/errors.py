"""
Capability error taxonomy.

Adapters wrap vendor exceptions into these types (raise ... from exc) so
the orchestrator can classify failures without knowing any provider SDK.

Fatal to the utterance:
- TranscriptionError
- IntentExtractionError
- ResponseGenerationError

Degraded (logged, substituted, pipeline continues):
- QueryError       -> empty result set
- SynthesisError   -> fragment skipped
"""

from __future__ import annotations


class CapabilityError(Exception):
    """Base class for failures of an external pipeline capability."""


class TranscriptionError(CapabilityError):
    """Speech could not be turned into text."""


class IntentExtractionError(CapabilityError):
    """Text could not be turned into a structured intent."""


class ResponseGenerationError(CapabilityError):
    """The response text stream failed to start or broke mid-stream."""


class SynthesisError(CapabilityError):
    """Text could not be turned into speech."""


class QueryError(CapabilityError):
    """A data-source query failed."""
