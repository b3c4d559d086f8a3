from boardpy.gitlab.gitlab import GitLab

__all__ = ["GitLab"]
