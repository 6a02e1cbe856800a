from collections.abc import Callable

import trio


async def poll_until(
    predicate: Callable[[], bool],
    interval: float,
    timeout: float | None,
    err_msg: str,
    err_type: type[BaseException],
) -> None:
    """
    Re-evaluate ``predicate`` every ``interval`` seconds until it holds.

    Returns at once when the predicate already holds. Running past
    ``timeout`` raises ``err_type(err_msg)``; ``None`` waits forever.
    """
    if predicate():
        return

    try:
        with trio.fail_after(timeout if timeout is not None else float("inf")):
            while True:
                await trio.sleep(interval)
                if predicate():
                    return
    except trio.TooSlowError:
        raise err_type(err_msg) from None
