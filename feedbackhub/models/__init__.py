from feedbackhub.models.submission import SubmissionRecord

__all__ = ["SubmissionRecord"]
