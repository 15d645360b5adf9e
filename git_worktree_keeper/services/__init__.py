"""Services for git-worktree-keeper."""
