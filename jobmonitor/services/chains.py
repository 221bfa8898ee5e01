"""Parent/child chain reconstruction for imported executions.

Parent links come straight from the legacy export and are not validated,
so both walks guard against cycles.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from jobmonitor.core.logging import get_logger
from jobmonitor.models.execution import ImportedJobExecution
from jobmonitor.schemas.execution import ChainNode, ChainResponse, ExecutionResponse
from jobmonitor.services.executions import get_execution, list_children

logger = get_logger(__name__)


async def find_root(db: AsyncSession, execution: ImportedJobExecution) -> ImportedJobExecution:
    """
    Follow parent links upward to the top of the chain.

    Stops at a record without a parent, at a parent that is not stored, or
    at the last record before a cycle would repeat.
    """
    current = execution
    visited = {current.execution_id}

    while current.is_part_of_chain:
        parent_id = current.parent_execution_id
        if parent_id in visited:
            logger.bind(execution_id=execution.execution_id, repeated=parent_id).warning(
                "chain_cycle_detected"
            )
            break

        parent = await get_execution(db, parent_id)  # type: ignore[arg-type]
        if parent is None:
            break

        visited.add(parent.execution_id)
        current = parent

    return current


async def build_tree(
    db: AsyncSession,
    execution: ImportedJobExecution,
    path: frozenset[int] = frozenset(),
) -> ChainNode:
    """Build the descendant tree below an execution, children newest first."""
    path = path | {execution.execution_id}
    children: list[ChainNode] = []

    for child in await list_children(db, execution.execution_id):
        if child.execution_id in path:
            logger.bind(execution_id=child.execution_id).warning("chain_cycle_detected")
            continue
        children.append(await build_tree(db, child, path))

    return ChainNode(execution=ExecutionResponse.model_validate(execution), children=children)


async def get_job_chain(db: AsyncSession, execution_id: int) -> ChainResponse | None:
    """Chain containing an execution, or None if the execution is unknown."""
    execution = await get_execution(db, execution_id)
    if execution is None:
        return None

    root = await find_root(db, execution)
    tree = await build_tree(db, root)

    return ChainResponse(
        root_execution=ExecutionResponse.model_validate(root),
        chain_tree=tree.children,
    )
