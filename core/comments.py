import logging
from typing import Any, Callable

from config import settings
from core.models import Comment
from core.normalize import is_continuation, loaded_children, parse_comment

log = logging.getLogger(__name__)

# Nesting levels walked before a branch is abandoned. Unrelated to max_depth,
# which only decides what is emitted.
MAX_TRAVERSAL_DEPTH = 64


def flatten_comments(
    children: list,
    thread_author: str,
    max_depth: int | None = None,
    on_visit: Callable[[Comment], Any] | None = None,
) -> list[Comment]:
    """Flatten a reply tree into a pre-order list of comments.

    A comment is emitted only if its depth is at most ``max_depth``, but the
    children of every loaded comment are walked regardless of depth.
    ``"more"`` continuation nodes carry no content and are skipped along
    with anything beneath them. ``on_visit`` sees every comment walked,
    emitted or not. A repeated comment id is emitted once; its replies are
    still walked.
    """
    if max_depth is None:
        max_depth = settings.comment_max_depth

    results: list[Comment] = []
    seen: set[str] = set()
    # explicit stack of (node, nesting level); reversed pushes keep pre-order
    stack = [(child, 0) for child in reversed(children or [])]
    while stack:
        node, level = stack.pop()
        if is_continuation(node) or not isinstance(node, dict):
            continue

        comment = parse_comment(node, thread_author)
        if on_visit is not None:
            on_visit(comment)
        if comment.depth <= max_depth and not (comment.id and comment.id in seen):
            seen.add(comment.id)
            results.append(comment)

        replies = loaded_children(node)
        if not replies:
            continue
        if level + 1 >= MAX_TRAVERSAL_DEPTH:
            log.warning(
                f"Comment {comment.id} nested beyond {MAX_TRAVERSAL_DEPTH} levels, "
                f"dropping {len(replies)} replies"
            )
            continue
        stack.extend((reply, level + 1) for reply in reversed(replies))

    return results
