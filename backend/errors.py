"""
Domain errors for Campus Connect.

Each error carries the HTTP status the API answers with; main.py maps them.
Refused transitions (join/book/accept) are not errors, they return False.
"""


class CampusError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidRequestError(CampusError):
    status_code = 400


class NotFoundError(CampusError):
    status_code = 404


class ConflictError(CampusError):
    status_code = 409


class UnimplementedError(CampusError):
    status_code = 501
