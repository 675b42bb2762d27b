from config import (
    CRITICAL_ACTIONS_LIMIT,
    PRIORITY_HIGH,
    PRIORITY_MEDIUM,
    DelayConfig,
)

_PREREQS_NEEDED_NOTICE = "Approve the missing prerequisites first"


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def plan_next_semester(
    graph,
    store,
    is_critical,
    semester: int,
    config: DelayConfig | None = None,
) -> dict:
    """
    Greedy course selection for `semester`.

    Candidates are the unapproved, available courses declared for that
    semester, ranked by (critical, credits, critical path length), all
    descending. Sorting is stable, so ties keep catalog order. At most
    config.max_suggestions courses are taken; a course that would push the
    running total past config.max_semester_credits is skipped, not a stop.

    Returns:
        {
          "semester": 5,
          "selected": [{"course_code", "course_name", "credits", "critical",
                        "critical_path_length"}, ...],
          "total_credits": 20,
          "notice": None | "Approve the missing prerequisites first",
        }
    """
    config = config or DelayConfig()
    declared = graph.courses_in_semester(semester)

    candidates = []
    for code in declared:
        if store.is_approved(code) or not store.is_available(code):
            continue
        course = graph.courses[code]
        candidates.append({
            "course_code": code,
            "course_name": course.title,
            "credits": course.credits,
            "critical": bool(is_critical(code)),
            "critical_path_length": graph.critical_path_length(code),
        })

    ranked = sorted(
        candidates,
        key=lambda c: (
            0 if c["critical"] else 1,
            -c["credits"],
            -c["critical_path_length"],
        ),
    )

    selected = []
    running_credits = 0
    for cand in ranked:
        if len(selected) >= config.max_suggestions:
            break
        if running_credits + cand["credits"] > config.max_semester_credits:
            continue
        selected.append(cand)
        running_credits += cand["credits"]

    notice = None
    if not selected and any(not store.is_approved(code) for code in declared):
        notice = _PREREQS_NEEDED_NOTICE

    return {
        "semester": semester,
        "selected": selected,
        "total_credits": running_credits,
        "notice": notice,
    }


def plan_actions(plan: dict) -> list[str]:
    """Render a plan as display lines."""
    actions = [
        f"{c['course_code']} - {c['credits']} credits ({'CRITICAL' if c['critical'] else 'Recommended'})"
        for c in plan["selected"]
    ]
    if not actions and plan.get("notice"):
        actions.append(plan["notice"])
    return actions


def build_recommendations(
    metrics: dict,
    breakdown: dict,
    critical_courses: list[dict],
    next_plan: dict | None,
    approved_load: dict[int, int],
    config: DelayConfig | None = None,
) -> list[dict]:
    """
    Assemble the recommendation list from precomputed analysis pieces.

    Entries are {kind, title, actions, priority} in a fixed order:
    no_progress_this_term, semester_delay, critical_available,
    next_semester_plan, load_imbalance. Inapplicable entries are skipped.
    """
    config = config or DelayConfig()
    real = metrics["real_semester"]
    recs: list[dict] = []

    if real > 1 and breakdown["approved_count"] == 0:
        available = [c for c in breakdown["pending"] if c["available"]]
        if available:
            focus = "Prioritize: " + ", ".join(c["course_code"] for c in available[:3])
        else:
            focus = "Review the prerequisites of the blocked courses"
        recs.append({
            "kind": "no_progress_this_term",
            "title": "No progress in the current semester",
            "actions": [
                f"You have not approved any course of the {_ordinal(real)} semester",
                f"Expected credits: {breakdown['total_credits']}",
                f"Consider focusing on {len(available)} available course(s)",
                focus,
            ],
            "priority": PRIORITY_HIGH,
        })

    delay = metrics["semester_delay"]
    if delay > 0:
        recs.append({
            "kind": "semester_delay",
            "title": f"Behind by {delay} semester(s)",
            "actions": [
                f"Ideal semester: {_ordinal(metrics['ideal_semester'])} (by credits)",
                f"Current semester: {_ordinal(real)}",
                f"Deficit: {metrics['credit_deficit']} credits",
                (
                    "Consider a heavier course load this semester"
                    if delay > 1
                    else "Try to approve one or two additional courses"
                ),
            ],
            "priority": PRIORITY_HIGH if delay > 1 else PRIORITY_MEDIUM,
        })

    critical_available = [c for c in critical_courses if c["available"]]
    if critical_available:
        recs.append({
            "kind": "critical_available",
            "title": f"{len(critical_available)} critical course(s) available",
            "actions": [
                f"{c['course_code']} - Sem {c['semester']} "
                f"(blocks {c['blocked_count']} courses, {c['credits']} credits)"
                for c in critical_available[:CRITICAL_ACTIONS_LIMIT]
            ],
            "priority": PRIORITY_HIGH,
        })

    if next_plan is not None:
        actions = plan_actions(next_plan)
        if actions:
            recs.append({
                "kind": "next_semester_plan",
                "title": f"Plan for the {_ordinal(next_plan['semester'])} semester",
                "actions": actions,
                "priority": PRIORITY_MEDIUM,
            })

    loads = list(approved_load.values())
    if loads:
        mean_load = sum(loads) / len(loads)
        current_load = approved_load.get(real, 0)
        if current_load > mean_load * config.load_imbalance_factor:
            recs.append({
                "kind": "load_imbalance",
                "title": "High course load this semester",
                "actions": [
                    f"Current load: {current_load} credits",
                    f"Average: {round(mean_load)} credits",
                    "Consider spreading your course load more evenly",
                ],
                "priority": PRIORITY_MEDIUM,
            })

    return recs
