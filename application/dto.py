"""
Data transfer objects - the contract between the application and presentation layers
"""
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from application.bulk.types import BatchResult, Outcome
from domain.customer.entity import Customer
from domain.user.entity import Role, User
from shared.codes import BusinessCode


class DTOBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UserDTO(DTOBase):
    """A user as sent and received over HTTP.

    Only type shapes are checked here; business validation happens per user
    in the domain so that one bad entry in a bulk request fails alone.
    ``password`` is accepted on input and never serialized.
    """

    account_id: int = Field(0, validation_alias=AliasChoices("account_id", "accountid"))
    id: int = 0
    name: str = ""
    email: str = ""
    role: int = Role.PRIMARY
    password: Optional[str] = Field(None, exclude=True)
    href: Optional[str] = None

    def to_entity(self) -> User:
        return User(
            account_id=self.account_id,
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            password=self.password,
        )

    @classmethod
    def from_entity(cls, user: User) -> "UserDTO":
        return cls(
            account_id=user.account_id,
            id=user.id,
            name=user.name,
            email=user.email,
            role=int(user.role),
            href=user.resource_path() if user.id else None,
        )


class UsersDTO(DTOBase):
    """Bulk request body: ``{"users": [...]}``"""
    users: List[UserDTO] = Field(default_factory=list)


class BulkOutcomeDTO(DTOBase):
    status: str
    user: UserDTO
    error_message: str = ""
    error_reason: int = BusinessCode.SUCCESS

    @classmethod
    def from_outcome(cls, outcome: Outcome[User]) -> "BulkOutcomeDTO":
        return cls(
            status=outcome.status.name,
            user=UserDTO.from_entity(outcome.entity),
            error_message=outcome.error_message,
            error_reason=int(outcome.error_reason),
        )


class BulkResponseDTO(DTOBase):
    """Aggregate result of a bulk request; ``results`` is in completion order"""
    overall_status: str
    results: List[BulkOutcomeDTO] = Field(default_factory=list)

    @classmethod
    def from_batch(cls, batch: BatchResult[User]) -> "BulkResponseDTO":
        return cls(
            overall_status=batch.overall_status.name,
            results=[BulkOutcomeDTO.from_outcome(o) for o in batch.outcomes],
        )


class CustomerDTO(DTOBase):
    id: int
    name: str
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, customer: Customer) -> "CustomerDTO":
        return cls.model_validate(customer)
