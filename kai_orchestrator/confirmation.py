"""Confirmation gate for side-effecting kAI actions."""

import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from shared.models.actions import ActionOutcome, KAIActionStatus, PendingAction
from shared.models.intention import KAIActionType
from shared.utils.exceptions import ConfirmationStateError

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_DESCRIPTION = "Confirme a ação abaixo"

ACTION_CONFIG: Mapping[KAIActionType, Dict[str, str]] = MappingProxyType({
    KAIActionType.UPLOAD_METRICS: {"title": "Importar Métricas", "icon": "FileSpreadsheet"},
    KAIActionType.CREATE_PLANNING_CARD: {"title": "Criar Card no Planejamento", "icon": "Calendar"},
    KAIActionType.UPLOAD_TO_LIBRARY: {"title": "Adicionar à Biblioteca", "icon": "Library"},
    KAIActionType.UPLOAD_TO_REFERENCES: {"title": "Adicionar às Referências", "icon": "Link"},
    KAIActionType.CREATE_CONTENT: {"title": "Criar Conteúdo", "icon": "CheckCircle2"},
    KAIActionType.ASK_ABOUT_METRICS: {"title": "Consultar Métricas", "icon": "FileSpreadsheet"},
    KAIActionType.ANALYZE_URL: {"title": "Analisar URL", "icon": "Link"},
    KAIActionType.GENERAL_CHAT: {"title": "Conversa", "icon": "CheckCircle2"},
})

ConfirmHandler = Callable[[PendingAction], Awaitable[Optional[ActionOutcome]]]


class ActionConfirmationGate:
    """Holds at most one pending action and commits it only on explicit confirmation.

    States: absent (no action), pending (awaiting the user), confirming
    (commit in flight). A successful commit or a cancel returns to absent; a
    failed commit returns to pending so the user can retry.
    """

    def __init__(self):
        self.pending_action: Optional[PendingAction] = None
        self._confirming = False

    @property
    def is_confirming(self) -> bool:
        return self._confirming

    @property
    def state(self) -> str:
        if self.pending_action is None:
            return "absent"
        return "confirming" if self._confirming else "pending"

    def propose(self, action: PendingAction) -> PendingAction:
        """Show an action for confirmation, replacing any pending one."""
        if self._confirming:
            raise ConfirmationStateError("An action is being confirmed")
        if self.pending_action is not None:
            logger.info(f"Replacing pending action {self.pending_action.type.value}")
        action.status = KAIActionStatus.CONFIRMING
        self.pending_action = action
        return action

    def describe(self) -> Optional[Dict[str, Any]]:
        """Display data for the pending action, or None when there is none."""
        action = self.pending_action
        if action is None:
            return None
        config = ACTION_CONFIG[action.type]
        return {
            "title": config["title"],
            "icon": config["icon"],
            "description": (
                action.preview.description if action.preview and action.preview.description
                else DEFAULT_PREVIEW_DESCRIPTION
            ),
            "previewTitle": action.preview.title if action.preview else None,
            "params": action.params.non_empty(),
            "files": [f.name for f in action.files],
            "confirming": self._confirming,
        }

    async def confirm(self, on_confirm: ConfirmHandler) -> ActionOutcome:
        """
        Commit the pending action through ``on_confirm``.

        Failures never escape: they are logged, reported in the outcome and
        the action stays pending.

        Raises:
            ConfirmationStateError: If nothing is pending or a confirmation is in flight
        """
        action = self.pending_action
        if action is None:
            raise ConfirmationStateError("No pending action to confirm")
        if self._confirming:
            raise ConfirmationStateError("Action is already being confirmed")

        self._confirming = True
        action.status = KAIActionStatus.EXECUTING
        try:
            outcome = await on_confirm(action)
        except Exception as e:
            logger.error(f"Failed to execute action {action.type.value}: {str(e)}")
            action.status = KAIActionStatus.CONFIRMING
            return ActionOutcome(success=False, message=str(e) or type(e).__name__)
        finally:
            self._confirming = False

        if outcome is None:
            outcome = ActionOutcome(success=True, message=f"{ACTION_CONFIG[action.type]['title']}: ok")

        if outcome.success:
            action.status = KAIActionStatus.COMPLETED
            if self.pending_action is action:
                self.pending_action = None
            logger.info(f"Action {action.type.value} confirmed")
        else:
            action.status = KAIActionStatus.CONFIRMING
            logger.warning(f"Action {action.type.value} was not committed: {outcome.message}")
        return outcome

    def cancel(self) -> None:
        """Drop the pending action.

        Raises:
            ConfirmationStateError: If a confirmation is in flight
        """
        if self._confirming:
            raise ConfirmationStateError("Cannot cancel while the action is being confirmed")
        self.pending_action = None
