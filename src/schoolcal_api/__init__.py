"""School calendar API: workspaces, memberships, invites and notifications."""
