from a2a_dispatch.types import Task, TaskState
from a2a_dispatch.utils.message import summarize_parts


def summarize_task(target: str, task: Task) -> str:
    """Composes a human-readable summary of a peer's task response.

    The summary is prefixed with the peer and the state it reported. The
    body is the text of the status message when it has parts, otherwise
    the number of returned artifacts.
    """
    state = (
        task.status.state.value
        if isinstance(task.status.state, TaskState)
        else task.status.state
    )
    summary = f'Response from {target} ({state}): '
    message = task.status.message
    if message is not None and message.parts:
        summary += summarize_parts(message.parts)
    elif task.artifacts:
        summary += f'Artifacts: {len(task.artifacts)}'
    return summary
