"""Recurring-occurrence and reminder engine: repeat expansion, conflicts, habit stats, reminders."""

from planner_engine.core.conflicts import find_conflicts
from planner_engine.core.habit_stats import (
    habit_stats,
    monthly_report,
    report_for_range,
    streak,
    weekly_report,
    yearly_report,
)
from planner_engine.core.models import (
    CompletionLog,
    CycleItem,
    CycleRule,
    Habit,
    HabitRule,
    ReminderPayload,
    ReminderSettings,
    RepeatRule,
    ScheduleInstance,
    ScheduleItem,
)
from planner_engine.core.occurrence import days_until, is_target_day, next_occurrence
from planner_engine.core.recurrence import expand, group_instances_by_date
from planner_engine.core.reminder_scheduler import ReminderScheduler, SchedulerHandle

__all__ = [
    "CompletionLog",
    "CycleItem",
    "CycleRule",
    "Habit",
    "HabitRule",
    "ReminderPayload",
    "ReminderScheduler",
    "ReminderSettings",
    "RepeatRule",
    "ScheduleInstance",
    "ScheduleItem",
    "SchedulerHandle",
    "days_until",
    "expand",
    "find_conflicts",
    "group_instances_by_date",
    "habit_stats",
    "is_target_day",
    "monthly_report",
    "next_occurrence",
    "report_for_range",
    "streak",
    "weekly_report",
    "yearly_report",
]
