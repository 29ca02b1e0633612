class PostError(Exception):
    '''Base class for failures surfaced to the HTTP caller.'''

    status_code : int = 500

    def __init__(self, message:str) -> None:
        super().__init__(message)
        self.message : str = message


class ValidationError(PostError):
    status_code = 400


class ConflictError(PostError):
    status_code = 409


class NotFoundError(PostError):
    # Unknown slug and wrong token raise the same error on purpose.
    status_code = 404


class InternalError(PostError):
    status_code = 500
