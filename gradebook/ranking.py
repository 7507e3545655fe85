"""
Positional ranking of a cohort by average.

Rank is the 1-based position after a stable descending sort, so students
with identical averages receive distinct consecutive ranks in the order
they were supplied. Ranking always covers the whole cohort passed in.
"""


def rank(cohort):
    """
    Rank a cohort by average, highest first.

    Args:
        cohort: iterable of {'student_id', 'average'} dicts

    Returns:
        list of {'student_id', 'rank'} dicts in rank order
    """
    ordered = sorted(cohort, key=lambda entry: entry['average'], reverse=True)
    return [
        {'student_id': entry['student_id'], 'rank': position}
        for position, entry in enumerate(ordered, 1)
    ]


def rank_map(cohort):
    """{student_id: rank} for a cohort."""
    return {entry['student_id']: entry['rank'] for entry in rank(cohort)}


def assign_ranks(rows, eligible=None):
    """
    Set ``rank`` on report rows in place.

    Rows need ``student_id`` and ``average`` attributes. Rows rejected by
    ``eligible`` are left out of the ranking and get rank 0.
    """
    ranked_rows = [row for row in rows if eligible is None or eligible(row)]
    ranks = rank_map(
        {'student_id': row.student_id, 'average': row.average} for row in ranked_rows
    )
    for row in rows:
        row.rank = ranks.get(row.student_id, 0)
    return rows
