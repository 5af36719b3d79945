# paperboy/services/errors.py


class PostError(Exception):
    code = "internal_error"


class InvalidInputError(PostError):
    code = "invalid_input"


class InvalidFilterError(InvalidInputError):
    code = "invalid_status"


class InvalidTransitionError(InvalidInputError):
    code = "invalid_transition"


class PostNotFoundError(PostError):
    code = "not_found"


class ClaimConflictError(PostError):
    code = "claim_conflict"


class PostStoreError(PostError):
    code = "internal_error"
