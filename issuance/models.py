import enum
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Date, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass

    def __str__(self):
        return self.__repr__()


class Availability(str, enum.Enum):
    Available = "Available"
    Issued = "Issued"


class Branch(Base):
    __tablename__ = "branch"

    id: Mapped[str] = mapped_column("branch_id", String(30), primary_key=True)
    manager_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("employees.emp_id", use_alter=True, name="fk_branch_manager"), nullable=True
    )
    address: Mapped[str] = mapped_column("branch_address", String(50), nullable=False)
    contact: Mapped[str] = mapped_column("contact_no", String(30), nullable=False)

    # A branch's manager is an employee who may work at another branch.
    manager: Mapped[Optional["Employee"]] = relationship(
        "Employee", foreign_keys=[manager_id], post_update=True
    )
    employees: Mapped[List["Employee"]] = relationship(
        "Employee", back_populates="branch", foreign_keys="[Employee.branch_id]"
    )

    def __repr__(self):
        return self.id


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[str] = mapped_column("emp_id", String(30), primary_key=True)
    name: Mapped[str] = mapped_column("emp_name", String(40), nullable=False)
    position: Mapped[str] = mapped_column(String(40), nullable=False)
    salary: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    branch_id: Mapped[str] = mapped_column(ForeignKey("branch.branch_id"), nullable=False)

    branch: Mapped[Branch] = relationship(
        "Branch", back_populates="employees", foreign_keys=[branch_id]
    )
    issues: Mapped[List["IssuedRecord"]] = relationship(
        "IssuedRecord", back_populates="employee"
    )

    def __repr__(self):
        return self.name


class Member(Base):
    __tablename__ = "members"

    id: Mapped[str] = mapped_column("member_id", String(30), primary_key=True)
    name: Mapped[str] = mapped_column("member_name", String(40), nullable=False)
    address: Mapped[str] = mapped_column("member_address", String(40), nullable=False)
    registration_date: Mapped[date] = mapped_column("reg_date", Date, nullable=False)

    issues: Mapped[List["IssuedRecord"]] = relationship("IssuedRecord", back_populates="member")

    def __repr__(self):
        return self.name


class Book(Base):
    __tablename__ = "books"

    isbn: Mapped[str] = mapped_column(String(50), primary_key=True)
    title: Mapped[str] = mapped_column("book_title", String(80), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    rental_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    # Only the loan tracker writes this column.
    availability: Mapped[Availability] = mapped_column(
        "status",
        Enum(Availability, native_enum=False, length=10),
        default=Availability.Available,
        nullable=False,
        server_default=Availability.Available.value,
    )
    author: Mapped[str] = mapped_column(String(30), nullable=False)
    publisher: Mapped[str] = mapped_column(String(30), nullable=False)

    issues: Mapped[List["IssuedRecord"]] = relationship("IssuedRecord", back_populates="book")

    def __repr__(self):
        return self.title


class IssuedRecord(Base):
    __tablename__ = "issued_status"

    id: Mapped[str] = mapped_column("issued_id", String(30), primary_key=True)
    member_id: Mapped[str] = mapped_column(
        "issued_member_id", ForeignKey("members.member_id"), nullable=False
    )
    book_isbn: Mapped[str] = mapped_column(
        "issued_book_isbn", ForeignKey("books.isbn"), nullable=False
    )
    employee_id: Mapped[str] = mapped_column(
        "issued_emp_id", ForeignKey("employees.emp_id"), nullable=False
    )
    issued_date: Mapped[date] = mapped_column(Date, nullable=False)

    book: Mapped[Book] = relationship(back_populates="issues")
    member: Mapped[Member] = relationship(back_populates="issues")
    employee: Mapped[Employee] = relationship(back_populates="issues")
    return_record: Mapped[Optional["ReturnRecord"]] = relationship(
        "ReturnRecord", back_populates="issued", uselist=False
    )

    @property
    def is_open(self) -> bool:
        return self.return_record is None

    def __repr__(self):
        return self.id


class ReturnRecord(Base):
    __tablename__ = "return_status"

    id: Mapped[str] = mapped_column("return_id", String(30), primary_key=True)
    issued_id: Mapped[str] = mapped_column(
        ForeignKey("issued_status.issued_id"), unique=True, nullable=False
    )
    book_isbn: Mapped[str] = mapped_column(
        "return_book_isbn", ForeignKey("books.isbn"), nullable=False
    )
    return_date: Mapped[date] = mapped_column(Date, nullable=False)

    issued: Mapped[IssuedRecord] = relationship(back_populates="return_record")

    def __repr__(self):
        return self.id
