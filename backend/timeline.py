import math


def estimate_timeline(
    remaining_credits: int,
    current_semester: int,
    credits_per_term: int = 22,
    total_semesters: int = 11,
) -> dict:
    """
    Rough graduation timeline estimate based on remaining credits.

    Args:
        remaining_credits: program credits not yet approved
        current_semester: the student's declared semester (>= 1)
        credits_per_term: assumed credits approved per term
        total_semesters: nominal program length

    Returns:
        {
          "remaining_credits": 118,
          "estimated_min_terms": 6,
          "projected_final_semester": 10,
          "nominal_final_semester": 11,
          "terms_over_nominal": 0,
          "disclaimer": "..."
        }
    """
    remaining_credits = max(0, int(remaining_credits))
    per_term = max(1, int(credits_per_term))
    estimated_terms = math.ceil(remaining_credits / per_term) if remaining_credits > 0 else 0

    # The current term still counts if there is anything left to take.
    projected_final = current_semester + max(0, estimated_terms - 1)

    return {
        "remaining_credits": remaining_credits,
        "estimated_min_terms": estimated_terms,
        "projected_final_semester": projected_final,
        "nominal_final_semester": total_semesters,
        "terms_over_nominal": max(0, projected_final - total_semesters),
        "disclaimer": (
            f"Rough estimate. Assumes {per_term} credits per term and every "
            "course offered each term. Ignores prerequisite chains that force "
            "courses into later terms."
        ),
    }
