"""
Badge statistics over a slice of daily records.

Pure functions: callers fetch and bound the records (usually a student's
latest N days, sorted by day) and pass them in. Records may be model
instances or the dicts produced by DailyBadgeRecord.to_dict().
"""

from models import OUTCOME_ABSENT, OUTCOME_EARNED, color_emoji

UNKNOWN_BADGE_NAME = 'Unknown'


def percentage(part, whole):
    """Whole-number percentage, rounded half up. 0 when whole is 0."""
    if not whole:
        return 0
    return (part * 200 + whole) // (whole * 2)


def _record_entries(record):
    if isinstance(record, dict):
        return record.get('entries') or []
    return record.entries


def _entry_fields(entry):
    """(name, color, outcome) for a model entry or a serialized one."""
    if isinstance(entry, dict):
        return entry.get('name') or UNKNOWN_BADGE_NAME, entry.get('color'), entry.get('outcome')
    kind = entry.badge_kind
    if kind is None:
        return UNKNOWN_BADGE_NAME, None, entry.outcome
    return kind.name, kind.color, entry.outcome


def aggregate_badge_stats(records):
    """
    Count outcomes per badge kind and overall.

    Returns::

        {
            'per_kind': {name: {'earned', 'not_earned', 'absent', 'total',
                                'percentage', 'color'}},
            'overall': {'total_earned', 'total_possible', 'percentage'},
        }

    per_kind keeps the order in which kinds are first seen.
    """
    per_kind = {}
    total_earned = 0
    total_possible = 0

    for record in records:
        for entry in _record_entries(record):
            name, color, outcome = _entry_fields(entry)
            stats = per_kind.get(name)
            if stats is None:
                stats = {'earned': 0, 'not_earned': 0, 'absent': 0, 'total': 0, 'color': color}
                per_kind[name] = stats

            if outcome == OUTCOME_EARNED:
                stats['earned'] += 1
                total_earned += 1
            elif outcome == OUTCOME_ABSENT:
                stats['absent'] += 1
            else:
                stats['not_earned'] += 1
            stats['total'] += 1
            total_possible += 1

    for stats in per_kind.values():
        stats['percentage'] = percentage(stats['earned'], stats['total'])

    return {
        'per_kind': per_kind,
        'overall': {
            'total_earned': total_earned,
            'total_possible': total_possible,
            'percentage': percentage(total_earned, total_possible),
        },
    }


def format_badge_report(stats):
    """Plain-text badge report for the bot front-end."""
    if not stats['per_kind']:
        return "📊 No badge data yet"

    lines = ["🏆 Badge report:", ""]
    for name, kind_stats in stats['per_kind'].items():
        lines.append(f"{color_emoji(kind_stats.get('color'))} {name}:")
        lines.append(f"   ✅ Earned: {kind_stats['earned']}")
        lines.append(f"   ❌ Not earned: {kind_stats['not_earned']}")
        if kind_stats['absent']:
            lines.append(f"   ⚪ Absent: {kind_stats['absent']}")
        lines.append(f"   📈 {kind_stats['percentage']}%")
        lines.append("")

    overall = stats['overall']
    lines.append("📊 Overall:")
    lines.append(f"   {overall['total_earned']}/{overall['total_possible']} ({overall['percentage']}%)")
    return "\n".join(lines)
