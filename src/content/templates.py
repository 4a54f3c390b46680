from __future__ import annotations

from typing import Dict, Tuple

from calendar_filler.models import ContentItem


def _t(title: str, duration_min: int, description: str) -> ContentItem:
    return ContentItem(title=title, duration_min=duration_min, description=description)


FALLBACK_TEMPLATES: Dict[str, Tuple[ContentItem, ...]] = {
    "work": (
        _t("Team Standup Meeting", 30, "Daily team sync on progress, blockers and priorities."),
        _t("Code Review Session", 60, "Review open pull requests and leave actionable feedback."),
        _t("Project Planning", 90, "Define milestones, allocate resources and agree on timelines."),
        _t("Client Call", 45, "Progress update and requirements gathering with the client."),
        _t("Documentation Writing", 60, "Update API docs, user guides and the internal wiki."),
        _t("Team Retrospective", 60, "Discuss what went well in the sprint and what to improve."),
        _t("Sprint Planning", 120, "Estimate upcoming work and set the sprint goal."),
        _t("One-on-One Meeting", 30, "Career growth and current challenges with your manager."),
        _t("Team Sync", 30, "Coordinate ongoing work and cross-team dependencies."),
        _t("Status Update Meeting", 30, "Review KPIs, milestones and upcoming deliverables."),
    ),
    "personal": (
        _t("Gym Workout", 60, "Full-body strength session. Bring a water bottle and a towel."),
        _t("Grocery Shopping", 45, "Weekly run for fresh produce and essentials."),
        _t("Reading Time", 60, "Quiet reading for leisure or personal development."),
        _t("Meal Prep", 45, "Batch-cook healthy meals for the week."),
        _t("Walk in the Park", 30, "Outdoor walk for fresh air and light exercise."),
        _t("Meditation Session", 20, "Guided breathing to reduce stress and improve focus."),
        _t("Call with Family", 60, "Catch up with loved ones."),
        _t("Hobby Time", 90, "Painting, music or crafts, without pressure."),
        _t("Coffee with Friends", 60, "Catch up at a cozy cafe."),
        _t("Movie Night", 120, "Favorite films with snacks and a comfortable setup."),
    ),
    "academic": (
        _t("Study Session", 90, "Focused study with the Pomodoro method and structured notes."),
        _t("Lecture Review", 60, "Consolidate lecture material into summary sheets."),
        _t("Assignment Work", 120, "Break down the current assignment and make progress."),
        _t("Research Reading", 75, "Literature review with detailed notes on scholarly sources."),
        _t("Online Course", 60, "Work through course modules and exercises."),
        _t("Group Project Meeting", 90, "Assign tasks and coordinate the group project."),
        _t("Exam Preparation", 180, "Practice exams, flashcards and mind maps."),
        _t("Note Review", 45, "Organize class notes and fill the gaps."),
        _t("Library Study", 120, "Quiet study session with library resources."),
        _t("Lab Work", 90, "Hands-on experiments; document results carefully."),
    ),
    "general": (
        _t("Planning Session", 45, "Review the week ahead and set priorities."),
        _t("Focus Block", 90, "Uninterrupted time for the most important task."),
        _t("Errands", 60, "Post office, bank and other small errands."),
        _t("Learning Hour", 60, "Pick up something new from a course or a book."),
        _t("Catch-up Call", 30, "Quick call to stay in touch."),
        _t("Admin Time", 45, "Email, bills and paperwork."),
        _t("Outdoor Break", 30, "Step outside and recharge."),
        _t("Creative Time", 90, "Write, draw or tinker on a side project."),
    ),
}
