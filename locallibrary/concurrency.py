import asyncio
from types import SimpleNamespace


async def parallel(**operations):
    """
    Await several independent operations together and return their results
    by name.

    Internal Working:
    1. Each coroutine is scheduled as its own task, so all of them are in
       flight at once
    2. The group completes only when every task has finished
    3. If any task fails, the others are cancelled and the first error is
       re-raised unchanged

    Usage:
        results = await parallel(
            author=store.find_by_id(Author, author_id),
            author_books=store.find_all(Book, {"author_id": author_id}),
        )
        results.author, results.author_books

    Returns:
        SimpleNamespace with one attribute per keyword argument
    """
    names = list(operations)
    tasks = [asyncio.ensure_future(op) for op in operations.values()]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return SimpleNamespace(**dict(zip(names, results)))
