"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class PatientNotFoundError(DomainException):
    """No patient with the requested id"""

    def __init__(self, patient_id: int):
        super().__init__(f"Patient {patient_id} not found")
        self.patient_id = patient_id


class InvalidTransactionDataError(DomainException):
    """Transaction data is malformed or invalid"""

    pass


class NotificationDeliveryError(DomainException):
    """Caregiver notification webhook could not be delivered"""

    pass
