"""Output contracts for generated trip bundles."""

from tripgen.shared.contracts.bundle_output import (
    DateRange,
    Event,
    TripBundleV1,
    find_contract_violations,
)

__all__ = ["DateRange", "Event", "TripBundleV1", "find_contract_violations"]
