"""Process-wide wiring of the decision core, built once from settings."""

import threading
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Optional

from sellify.config import Settings, settings
from sellify.database import SessionLocal
from sellify.logging_config import get_logger
from sellify.services.alert_service import AlertDetector, AlertSender
from sellify.services.audit_service import AuditRecorder, SqlAuditStore
from sellify.services.conversation_service import ConversationRegistry
from sellify.services.decision_cycle import DecisionCycle
from sellify.services.generation_guard import GenerationValidator
from sellify.services.knowledge_base import KnowledgeBase
from sellify.services.llm import OpenAIProvider
from sellify.services.llm.base import LLMProvider
from sellify.services.quota_engine import QuotaLimits
from sellify.services.quota_service import QuotaRegistry
from sellify.services.reset_scheduler import QuotaResetScheduler
from sellify.services.storage_service import save_conversation_state, save_quota_usage

logger = get_logger("runtime")


@dataclass
class Runtime:
    config: Settings
    quotas: QuotaRegistry
    conversations: ConversationRegistry
    knowledge_base: KnowledgeBase
    validator: GenerationValidator
    detector: AlertDetector
    alert_sender: AlertSender
    recorder: AuditRecorder
    cycle: DecisionCycle
    scheduler: QuotaResetScheduler
    session_factory: Callable = SessionLocal
    _persist_locks: dict = field(default_factory=dict, repr=False)
    _persist_locks_guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _persist_lock(self, key: tuple[str, str]) -> threading.Lock:
        with self._persist_locks_guard:
            return self._persist_locks.setdefault(key, threading.Lock())

    def persist_tenant(self, tenant_id: str) -> bool:
        # Snapshot read and commit under one lock: a stale copy can never be
        # committed after a newer one, and only one writer inserts a new row.
        with self._persist_lock(("tenant", tenant_id)):
            db = self.session_factory()
            try:
                return save_quota_usage(db, tenant_id, self.quotas.usage(tenant_id)).ok
            finally:
                db.close()

    def persist_conversation(self, tenant_id: str, conversation_id: str) -> bool:
        with self._persist_lock(("conversation", conversation_id)):
            db = self.session_factory()
            try:
                return save_conversation_state(
                    db,
                    conversation_id,
                    tenant_id,
                    self.conversations.get_state(conversation_id).value,
                    self.conversations.is_automation_stopped(conversation_id),
                ).ok
            finally:
                db.close()


def build_runtime(
    config: Settings,
    provider: Optional[LLMProvider] = None,
    audit_store=None,
    session_factory: Callable = SessionLocal,
) -> Runtime:
    quotas = QuotaRegistry(
        QuotaLimits(
            messages_per_day=config.messages_per_day,
            messages_per_week=config.messages_per_week,
            images_per_day=config.images_per_day,
            videos_per_week=config.videos_per_week,
        )
    )
    conversations = ConversationRegistry()
    knowledge_base = KnowledgeBase()
    validator = GenerationValidator(
        knowledge_base,
        forbidden_words=config.forbidden_words,
        max_length=config.max_generated_length,
        fallback=config.fallback_message,
    )
    detector = AlertDetector(
        legal_keywords=config.legal_keywords,
        threat_keywords=config.threat_keywords,
        anger_keywords=config.anger_keywords,
        sensitive_words=config.sensitive_words,
        max_misunderstandings=config.max_misunderstandings,
    )
    alert_sender = AlertSender(config.alert_bot_token, config.alert_chat_id)
    recorder = AuditRecorder(audit_store or SqlAuditStore(session_factory), fallback_message=config.fallback_message)

    if provider is None and config.openai_api_key:
        provider = OpenAIProvider(
            config.openai_api_key,
            default_model=config.generation_model,
            default_timeout=config.generation_timeout_seconds,
        )

    cycle = DecisionCycle(
        config=config,
        quotas=quotas,
        conversations=conversations,
        detector=detector,
        validator=validator,
        recorder=recorder,
        alert_sender=alert_sender,
        provider=provider,
    )

    runtime = Runtime(
        config=config,
        quotas=quotas,
        conversations=conversations,
        knowledge_base=knowledge_base,
        validator=validator,
        detector=detector,
        alert_sender=alert_sender,
        recorder=recorder,
        cycle=cycle,
        scheduler=QuotaResetScheduler(quotas),
        session_factory=session_factory,
    )
    runtime.scheduler.on_reset = runtime.persist_tenant
    return runtime


@lru_cache
def get_runtime() -> Runtime:
    return build_runtime(settings)
