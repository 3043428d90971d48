"""Trip collaboration: roles, invitations, members, comments, votes and notifications."""
