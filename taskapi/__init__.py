"""Task Manager API: user-scoped task management over REST."""
