"""Bootstrap wiring for attestation workflow dependencies.

The batch store and donation ledger are PostgreSQL-backed when
DATABASE_URL is set and in-memory stubs otherwise. The identity
resolver, notifier and report generator are external collaborators;
stubs are wired until real adapters are set.
"""

from __future__ import annotations

from platesync.application.ports.batch_store import BatchStoreProtocol
from platesync.application.ports.donation_ledger import DonationLedgerProtocol
from platesync.application.ports.finalization_side_effects import (
    CountReportGeneratorProtocol,
    FinalizationNotifierProtocol,
)
from platesync.application.ports.identity_resolver import IdentityResolverProtocol
from platesync.application.services.attestation_engine import AttestationEngine
from platesync.application.services.finalization_coordinator import (
    FinalizationCoordinator,
)
from platesync.application.services.finalization_side_effects import (
    FinalizationSideEffectDispatcher,
)
from platesync.bootstrap.database import get_session_factory, is_database_configured
from platesync.config.attestation_config import AttestationConfig
from platesync.infrastructure.adapters.persistence import (
    PostgresBatchStore,
    PostgresDonationLedger,
)
from platesync.infrastructure.stubs import (
    BatchStoreStub,
    CountReportGeneratorStub,
    DonationLedgerStub,
    IdentityResolverStub,
    RecordingNotifierStub,
)

_config: AttestationConfig | None = None
_batch_store: BatchStoreProtocol | None = None
_donation_ledger: DonationLedgerProtocol | None = None
_identity_resolver: IdentityResolverProtocol | None = None
_notifier: FinalizationNotifierProtocol | None = None
_report_generator: CountReportGeneratorProtocol | None = None
_side_effects: FinalizationSideEffectDispatcher | None = None
_coordinator: FinalizationCoordinator | None = None
_engine: AttestationEngine | None = None


def get_attestation_config() -> AttestationConfig:
    """Get attestation config, read from the environment on first use."""
    global _config
    if _config is None:
        _config = AttestationConfig.from_environment()
    return _config


def get_batch_store() -> BatchStoreProtocol:
    """Get batch store instance."""
    global _batch_store
    if _batch_store is None:
        if is_database_configured():
            _batch_store = PostgresBatchStore(get_session_factory())
        else:
            _batch_store = BatchStoreStub()
    return _batch_store


def get_donation_ledger() -> DonationLedgerProtocol:
    """Get donation ledger instance."""
    global _donation_ledger
    if _donation_ledger is None:
        if is_database_configured():
            _donation_ledger = PostgresDonationLedger(get_session_factory())
        else:
            store = get_batch_store()
            _donation_ledger = DonationLedgerStub(
                store if isinstance(store, BatchStoreStub) else None
            )
    return _donation_ledger


def get_identity_resolver() -> IdentityResolverProtocol:
    """Get identity resolver instance."""
    global _identity_resolver
    if _identity_resolver is None:
        _identity_resolver = IdentityResolverStub()
    return _identity_resolver


def get_finalization_notifier() -> FinalizationNotifierProtocol:
    """Get finalization notifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = RecordingNotifierStub()
    return _notifier


def get_count_report_generator() -> CountReportGeneratorProtocol:
    """Get count report generator instance."""
    global _report_generator
    if _report_generator is None:
        _report_generator = CountReportGeneratorStub()
    return _report_generator


def get_side_effect_dispatcher() -> FinalizationSideEffectDispatcher:
    """Get the finalization follow-up dispatcher."""
    global _side_effects
    if _side_effects is None:
        _side_effects = FinalizationSideEffectDispatcher(
            notifier=get_finalization_notifier(),
            report_generator=get_count_report_generator(),
            config=get_attestation_config(),
        )
    return _side_effects


def get_finalization_coordinator() -> FinalizationCoordinator:
    """Get finalization coordinator instance."""
    global _coordinator
    if _coordinator is None:
        _coordinator = FinalizationCoordinator(
            batch_store=get_batch_store(),
            ledger=get_donation_ledger(),
            side_effects=get_side_effect_dispatcher(),
            config=get_attestation_config(),
        )
    return _coordinator


def get_attestation_engine() -> AttestationEngine:
    """Get attestation engine instance."""
    global _engine
    if _engine is None:
        _engine = AttestationEngine(
            batch_store=get_batch_store(),
            identity_resolver=get_identity_resolver(),
            finalization_coordinator=get_finalization_coordinator(),
            config=get_attestation_config(),
        )
    return _engine


def reset_attestation_dependencies() -> None:
    """Reset all singleton instances for testing."""
    global _config
    global _batch_store
    global _donation_ledger
    global _identity_resolver
    global _notifier
    global _report_generator
    global _side_effects
    global _coordinator
    global _engine

    _config = None
    _batch_store = None
    _donation_ledger = None
    _identity_resolver = None
    _notifier = None
    _report_generator = None
    _side_effects = None
    _coordinator = None
    _engine = None


def set_attestation_config(config: AttestationConfig) -> None:
    """Set custom attestation config for testing."""
    global _config
    _config = config


def set_batch_store(store: BatchStoreProtocol) -> None:
    """Set custom batch store for testing."""
    global _batch_store
    _batch_store = store


def set_donation_ledger(ledger: DonationLedgerProtocol) -> None:
    """Set custom donation ledger for testing."""
    global _donation_ledger
    _donation_ledger = ledger


def set_identity_resolver(resolver: IdentityResolverProtocol) -> None:
    """Set custom identity resolver."""
    global _identity_resolver
    _identity_resolver = resolver


def set_finalization_notifier(notifier: FinalizationNotifierProtocol) -> None:
    """Set custom finalization notifier."""
    global _notifier
    _notifier = notifier


def set_count_report_generator(generator: CountReportGeneratorProtocol) -> None:
    """Set custom count report generator."""
    global _report_generator
    _report_generator = generator
