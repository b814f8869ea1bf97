"""
Live introspection of MCP servers.

Local stdio servers are spawned through the MCP Python SDK, initialized,
and asked for their tools, resources and prompts. The whole exchange races
a fixed deadline; whichever finishes first decides the result and the
loser is always cancelled and awaited so the child process is reaped.
Remote servers are never contacted.
"""

import asyncio
import os
import tempfile
from typing import Any, Awaitable, Dict, List, TextIO, TypeVar, Union

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.types import Implementation
from pydantic import ValidationError

from mcp_reconcile import __version__
from mcp_reconcile.core.exceptions import QueryTimeoutError
from mcp_reconcile.core.models import (
    RemoteServerDefinition,
    ServerDefinition,
    StdioServerDefinition,
    parse_server_definition,
)
from mcp_reconcile.introspection.models import (
    CapabilityDescriptor,
    Failed,
    IntrospectionResult,
    RemoteSkipped,
    Succeeded,
)
from mcp_reconcile.utils.logging import get_logger

logger = get_logger(__name__)

QUERY_TIMEOUT_SECONDS = 8
UNKNOWN_TRANSPORT = "Unknown transport type"

CLIENT_INFO = Implementation(name="mcp-reconcile", version=__version__)

T = TypeVar("T")


def describe_error(exc: BaseException) -> str:
    """Readable message for an exception, unwrapping task-group errors."""
    while isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    return str(exc) or exc.__class__.__name__


async def _cancel_and_wait(task: "asyncio.Future[Any]") -> None:
    task.cancel()
    await asyncio.wait({task})
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Abandoned query ended with: {describe_error(task.exception())}")


async def race_deadline(operation: Awaitable[T], seconds: float) -> T:
    """
    Run ``operation`` against a timer; the first to finish wins.

    The timer is cancelled when the operation wins. When the timer wins the
    operation is cancelled and awaited before QueryTimeoutError is raised,
    so its cleanup has run by the time the caller sees the failure.

    Raises:
        QueryTimeoutError: If the deadline elapses first
    """
    op_task = asyncio.ensure_future(operation)
    timer = asyncio.ensure_future(asyncio.sleep(seconds))
    try:
        done, _ = await asyncio.wait({op_task, timer}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        await _cancel_and_wait(op_task)
        raise
    finally:
        timer.cancel()

    if op_task in done:
        return op_task.result()

    await _cancel_and_wait(op_task)
    raise QueryTimeoutError(seconds)


def _collect(result: Any, attribute: str) -> List[CapabilityDescriptor]:
    if isinstance(result, BaseException):
        logger.debug(f"Listing {attribute} failed: {describe_error(result)}")
        return []
    return [CapabilityDescriptor.from_sdk(item) for item in getattr(result, attribute, None) or []]


async def _list_capabilities(params: StdioServerParameters, errlog: TextIO) -> Succeeded:
    async with stdio_client(params, errlog=errlog) as (read, write):
        async with ClientSession(read, write, client_info=CLIENT_INFO) as session:
            await session.initialize()
            tools, resources, prompts = await asyncio.gather(
                session.list_tools(),
                session.list_resources(),
                session.list_prompts(),
                return_exceptions=True,
            )
    return Succeeded(
        tools=_collect(tools, "tools"),
        resources=_collect(resources, "resources"),
        prompts=_collect(prompts, "prompts"),
    )


def _log_stderr(errlog: TextIO, command: str) -> None:
    try:
        errlog.seek(0)
        output = errlog.read().strip()
    except (OSError, ValueError):
        return
    if output:
        logger.debug(f"stderr from '{command}':\n{output[-4000:]}")


async def query_stdio(definition: StdioServerDefinition) -> IntrospectionResult:
    """Spawn a local server and list its capabilities under the deadline."""
    params = StdioServerParameters(
        command=definition.command,
        args=list(definition.args),
        env={**os.environ, **definition.env},
    )

    # The child's stderr goes to a private file so it never reaches our terminal
    with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as errlog:
        try:
            result: IntrospectionResult = await race_deadline(
                _list_capabilities(params, errlog), QUERY_TIMEOUT_SECONDS,
            )
        except QueryTimeoutError as e:
            logger.warning(f"Introspection of '{definition.command}' timed out")
            result = Failed(reason=e.message)
        except Exception as e:
            logger.info(f"Introspection of '{definition.command}' failed: {describe_error(e)}")
            result = Failed(reason=describe_error(e))
        finally:
            _log_stderr(errlog, definition.command)

    return result


async def query_server(definition: Union[Dict[str, Any], ServerDefinition]) -> IntrospectionResult:
    """
    Introspect one server definition.

    Args:
        definition: Raw definition mapping or its typed view

    Returns:
        A terminal result: Succeeded, Failed or RemoteSkipped
    """
    if isinstance(definition, dict):
        try:
            definition = parse_server_definition(definition)
        except ValidationError as e:
            return Failed(reason=f"Invalid server definition: {e.error_count()} validation errors")

    if isinstance(definition, StdioServerDefinition):
        return await query_stdio(definition)
    if isinstance(definition, RemoteServerDefinition):
        return RemoteSkipped()
    return Failed(reason=UNKNOWN_TRANSPORT)
