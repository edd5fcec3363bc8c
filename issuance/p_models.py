import enum
from datetime import date
from typing import Optional

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, field_validator


class BaseModel(PydanticBaseModel):
    model_config = ConfigDict(from_attributes=True)


class BookSchema(BaseModel):
    isbn: str
    title: str
    category: str
    rental_price: float
    availability: str
    author: str
    publisher: str

    @field_validator("availability", mode="before")
    def convert_availability_to_string(cls, value):
        return value.value if isinstance(value, enum.Enum) else value


class AvailabilitySchema(BaseModel):
    isbn: str
    availability: str

    @field_validator("availability", mode="before")
    def convert_availability_to_string(cls, value):
        return value.value if isinstance(value, enum.Enum) else value


class MemberSchema(BaseModel):
    id: str
    name: str
    address: str
    registration_date: date


class EmployeeSchema(BaseModel):
    id: str
    name: str
    position: str
    salary: float
    branch_id: str


class BranchSchema(BaseModel):
    id: str
    address: str
    contact: str
    manager_id: Optional[str] = None
    manager: Optional[str] = None

    @field_validator("manager", mode="before")
    def convert_manager_to_string(cls, value):
        return str(value) if value is not None else None


class IssuedRecordSchema(BaseModel):
    id: str
    member_id: str
    book_isbn: str
    employee_id: str
    issued_date: date


class IssuedRecordDetailSchema(IssuedRecordSchema):
    book: str
    member: str
    employee: str
    is_open: bool

    @field_validator("book", "member", "employee", mode="before")
    def convert_related_to_string(cls, value):
        return str(value)


class ReturnRecordSchema(BaseModel):
    id: str
    issued_id: str
    book_isbn: str
    return_date: date


class AvailabilityMismatchSchema(BaseModel):
    isbn: str
    stored: str
    expected: str
    open_loans: int


class LoanSnapshot(BaseModel):
    issued_id: str
    member_id: str
    book_isbn: str
    issued_date: date
    member_name: Optional[str] = None
    book_title: Optional[str] = None


class OverdueLoanSchema(LoanSnapshot):
    days_outstanding: int


class RevenueByCategorySchema(BaseModel):
    category: str
    revenue: float
    times_rented: int


class BranchPerformanceSchema(BaseModel):
    branch_id: str
    branch_address: str
    books_issued: int
    books_returned: int
    total_revenue: float


class TopEmployeeSchema(BaseModel):
    emp_id: str
    emp_name: str
    branch_id: str
    books_issued: int


class FrequentMemberSchema(BaseModel):
    member_id: str
    member_name: str
    total_books_issued: int


class BookIssueCountSchema(BaseModel):
    isbn: str
    title: str
    issue_count: int


class EmployeeDirectorySchema(BaseModel):
    emp_id: str
    emp_name: str
    position: str
    salary: float
    branch_id: str
    branch_address: str
    manager_name: Optional[str] = None


class UnreturnedBookSchema(BaseModel):
    isbn: str
    title: str
