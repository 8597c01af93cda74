"""HTTP collaborators: test fetch, attempt submission, attempt history."""
