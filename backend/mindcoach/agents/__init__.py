"""Agent roles for MindCoach: coach, generator, judge and reflection coach."""
