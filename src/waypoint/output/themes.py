"""Status color maps."""

from waypoint.models import PipelineState, StepStatus

STEP_COLORS: dict[StepStatus, str] = {
    StepStatus.SUCCEEDED: "green",
    StepStatus.FAILED: "red bold",
}

STATE_COLORS: dict[PipelineState, str] = {
    PipelineState.PENDING: "dim",
    PipelineState.RUNNING: "yellow",
    PipelineState.SUCCEEDED: "green",
    PipelineState.FAILED: "red bold",
}


def styled_step_status(status: StepStatus) -> str:
    color = STEP_COLORS.get(status, "white")
    return f"[{color}]{status.value}[/{color}]"


def styled_state(state: PipelineState) -> str:
    color = STATE_COLORS.get(state, "white")
    return f"[{color}]{state.value}[/{color}]"
