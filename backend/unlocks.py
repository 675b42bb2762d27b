def build_reverse_prereq_map(
    course_codes: list[str],
    prereq_map: dict[str, list[str]],
) -> dict[str, list[str]]:
    """
    Builds a reverse prerequisite map: for each course, which courses directly
    list it as a prerequisite.

    Returns: {"MAT1001": ["MAT1002", "MAT1004", "FIS1002"], ...}

    Every course in course_codes gets an entry (possibly empty). Dependents
    are listed in catalog order, so the map is the exact transpose of
    prereq_map restricted to known courses.
    """
    reverse: dict[str, list[str]] = {code: [] for code in course_codes}

    for course_code in course_codes:
        for prereq_code in prereq_map.get(course_code, []):
            if prereq_code not in reverse:
                continue
            if course_code not in reverse[prereq_code]:
                reverse[prereq_code].append(course_code)

    return reverse


def compute_chain_depths(
    reverse_map: dict[str, list[str]],
) -> dict[str, int]:
    """
    Compute the longest downstream prerequisite chain depth for every course.

    A course with no downstream dependents has depth 0.
    ING9001 -> ING9002 -> ING9003 -> ING9004
    gives ING9001 depth 3.

    Computed once at graph build. O(V+E) with memoization. Iterative
    post-order walk, so long chains never hit the recursion limit; an edge
    back into a course still on the stack (a cycle) contributes 0.
    """
    memo: dict[str, int] = {}
    in_stack: set[str] = set()

    for root in reverse_map:
        if root in memo:
            continue
        stack: list[tuple[str, int]] = [(root, 0)]
        in_stack.add(root)
        while stack:
            course, child_idx = stack[-1]
            children = reverse_map.get(course, [])
            if child_idx < len(children):
                stack[-1] = (course, child_idx + 1)
                child = children[child_idx]
                if child in memo or child in in_stack:
                    continue  # done, or cycle guard
                in_stack.add(child)
                stack.append((child, 0))
                continue
            depth = 0
            for child in children:
                if child in in_stack:
                    continue
                depth = max(depth, 1 + memo.get(child, 0))
            memo[course] = depth
            in_stack.discard(course)
            stack.pop()

    return memo


def collect_dependents(
    course_code: str,
    reverse_map: dict[str, list[str]],
    include=None,
) -> list[str]:
    """
    Transitive closure of dependents of course_code, in discovery order.

    include: optional predicate; dependents failing it are neither returned
    nor traversed through. Visited-set guarded, so cycles terminate.
    """
    visited: set[str] = set()
    pending = [course_code]
    out: list[str] = []

    while pending:
        current = pending.pop()
        for dep in reverse_map.get(current, []):
            if dep in visited or dep == course_code:
                continue
            visited.add(dep)
            if include is not None and not include(dep):
                continue
            out.append(dep)
            pending.append(dep)

    return out


def get_direct_unlocks(
    course_code: str,
    reverse_map: dict[str, list[str]],
    limit: int | None = None,
) -> list[str]:
    """
    Returns courses directly unlocked by completing `course_code`, up to
    `limit` when given. A course is "unlocked" if it lists `course_code` as
    a direct prerequisite.
    """
    unlocks = reverse_map.get(course_code, [])
    return list(unlocks if limit is None else unlocks[:limit])
