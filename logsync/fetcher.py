"""Adaptive block-range log fetching.

The window policy lives in :func:`next_step`, a pure transition over
``FetchState`` so it can be exercised without a node. ``AdaptiveRangeFetcher``
drives it against a transport.

Policy summary:

* success advances past the window and doubles the window back toward
  ``initial_batch_size``;
* failure keeps ``current_block`` and halves the window, never below
  ``min_batch_size`` while a larger window is still failing;
* a failure at ``min_batch_size`` or smaller switches to single-block probing,
  so a block is only skipped after failing on its own. After a skip the window
  resets to ``initial_batch_size``.

Skipped blocks lose their logs. They are reported in ``FetchResult.skipped_blocks``
and logged at ERROR; re-run with an explicit narrower range to retry them.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from logsync.exceptions import InvalidBlockRangeError
from logsync.logging import logger
from logsync.rpc import LogTransport

DEFAULT_INITIAL_BATCH_SIZE = 50000
DEFAULT_MIN_BATCH_SIZE = 100


@dataclass(frozen=True)
class FetchPolicy:
    initial_batch_size: int = DEFAULT_INITIAL_BATCH_SIZE
    min_batch_size: int = DEFAULT_MIN_BATCH_SIZE

    def __post_init__(self):
        if self.initial_batch_size < 1 or self.min_batch_size < 1:
            raise ValueError("batch sizes must be positive")


@dataclass(frozen=True)
class FetchState:
    current_block: int
    batch_size: int


@dataclass(frozen=True)
class FetchOutcome:
    success: bool
    end_block: int


@dataclass
class FetchResult:
    logs: List[Dict[str, Any]] = field(default_factory=list)
    skipped_blocks: List[int] = field(default_factory=list)
    requests: int = 0


def window_end(state: FetchState, to_block: int) -> int:
    return min(state.current_block + state.batch_size - 1, to_block)


def next_step(state: FetchState, outcome: FetchOutcome, policy: FetchPolicy) -> FetchState:
    """Transition after one range query over ``[state.current_block, outcome.end_block]``."""
    if outcome.success:
        batch_size = state.batch_size
        if batch_size < policy.initial_batch_size:
            batch_size = min(batch_size * 2, policy.initial_batch_size)
        return FetchState(current_block=outcome.end_block + 1, batch_size=batch_size)

    if outcome.end_block == state.current_block:
        # single block failed on its own: give up on it
        return FetchState(current_block=state.current_block + 1, batch_size=policy.initial_batch_size)

    halved = state.batch_size // 2
    if halved >= policy.min_batch_size:
        batch_size = halved
    elif state.batch_size > policy.min_batch_size:
        batch_size = policy.min_batch_size
    else:
        batch_size = 1
    return FetchState(current_block=state.current_block, batch_size=batch_size)


def is_skip(before: FetchState, after: FetchState, outcome: FetchOutcome) -> bool:
    return not outcome.success and after.current_block > before.current_block


class AdaptiveRangeFetcher:
    """Walks a block range with ``eth_getLogs`` using an adaptive window."""

    def __init__(self, transport: LogTransport, policy: Optional[FetchPolicy] = None):
        self.transport = transport
        self.policy = policy or FetchPolicy()
        self._logger = logger.bind(module='AdaptiveRangeFetcher')

    async def fetch(self, addresses: Sequence[str], topics: Sequence[Any],
                    from_block: int, to_block: int) -> FetchResult:
        if from_block > to_block:
            raise InvalidBlockRangeError(from_block, to_block)

        result = FetchResult()
        state = FetchState(current_block=from_block, batch_size=self.policy.initial_batch_size)

        while state.current_block <= to_block:
            end_block = window_end(state, to_block)
            self._logger.debug(f"Fetching logs: {state.current_block} to {end_block}")
            result.requests += 1
            try:
                logs = await self.transport.get_logs(addresses, topics, state.current_block, end_block)
            except Exception as e:
                self._logger.warning(f"Failed to fetch logs for blocks {state.current_block} to {end_block}: {e}")
                outcome = FetchOutcome(success=False, end_block=end_block)
                after = next_step(state, outcome, self.policy)
                if is_skip(state, after, outcome):
                    self._logger.error(f"Unable to fetch logs for single block {state.current_block}, skipping it")
                    result.skipped_blocks.append(state.current_block)
                else:
                    self._logger.info(f"Reduced batch size to {after.batch_size}, retrying from {after.current_block}")
                state = after
                continue

            result.logs.extend(logs)
            state = next_step(state, FetchOutcome(success=True, end_block=end_block), self.policy)

        self._logger.info(
            f"Fetched {len(result.logs)} logs for blocks {from_block}-{to_block} "
            f"in {result.requests} requests ({len(result.skipped_blocks)} blocks skipped)"
        )
        return result
