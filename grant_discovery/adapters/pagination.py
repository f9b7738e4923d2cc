"""Per-query pagination cursor.

Each query sweeps forward one page per run and wraps to page 1 after the last
page. Because the next page is computed from the page count reported on every
fetch, the sweep self-heals when the registry's result set grows or shrinks.
"""


def next_page(current_page: int, total_pages: int) -> int:
    """Cursor value to persist after successfully fetching ``current_page``."""
    if current_page >= total_pages:
        return 1
    return current_page + 1
