class ConsoleError(Exception):
    """Base class for every error the console turns into a notification."""


class ValidationError(ConsoleError):
    def __init__(self, field, message):
        super().__init__(message)
        self.field = field
        self.message = message


class NetworkError(ConsoleError):
    pass


class ConfigurationError(ConsoleError):
    pass


class NotFoundError(ConsoleError):
    def __init__(self, collection, record_id):
        super().__init__(f"{collection} record {record_id} not found")
        self.collection = collection
        self.record_id = record_id
