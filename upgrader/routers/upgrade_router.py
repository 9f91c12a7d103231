from fastapi import APIRouter, Depends, HTTPException

from upgrader.schemas import AlertStateView, DecisionView, UserActionRequest
from upgrader.services.alert_state import AlertState
from upgrader.services.factory import get_session_controller
from upgrader.services.session import SessionController, UserAction

router = APIRouter(prefix="/api/upgrade", tags=["upgrade"])


def _state_view(state: AlertState) -> AlertStateView:
    return AlertStateView(
        last_alerted_at=state.last_alerted_at.isoformat() if state.last_alerted_at else None,
        last_version_alerted=str(state.last_version_alerted) if state.last_version_alerted else None,
        user_ignored_version=str(state.user_ignored_version) if state.user_ignored_version else None,
    )


@router.get("/decision", response_model=DecisionView)
async def get_decision(controller: SessionController = Depends(get_session_controller)) -> DecisionView:
    await controller.initialize()
    return DecisionView.from_decision(controller.evaluate())


@router.get("/state", response_model=AlertStateView)
async def get_state(controller: SessionController = Depends(get_session_controller)) -> AlertStateView:
    await controller.initialize()
    return _state_view(controller.state_store.state)


@router.post("/shown", response_model=AlertStateView)
async def mark_shown(controller: SessionController = Depends(get_session_controller)) -> AlertStateView:
    await controller.initialize()
    decision = controller.evaluate()
    if not decision.should_show:
        raise HTTPException(status_code=409, detail=f"No prompt to show ({decision.reason.value})")
    await controller.record_alert_shown(decision)
    return _state_view(controller.state_store.state)


@router.post("/actions", response_model=AlertStateView)
async def post_action(
    body: UserActionRequest,
    controller: SessionController = Depends(get_session_controller),
) -> AlertStateView:
    await controller.initialize()
    decision = controller.evaluate()
    action = UserAction(body.action)
    if decision.blocked and action in {UserAction.IGNORE, UserAction.LATER}:
        raise HTTPException(status_code=400, detail="Blocked updates cannot be ignored or postponed")
    await controller.handle_action(action, decision)
    return _state_view(controller.state_store.state)


@router.delete("/state", response_model=AlertStateView)
async def reset_state(controller: SessionController = Depends(get_session_controller)) -> AlertStateView:
    await controller.reset()
    return _state_view(controller.state_store.state)
