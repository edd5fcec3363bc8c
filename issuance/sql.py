CREATE_SQLITE = """CREATE TABLE IF NOT EXISTS "branch" (
	branch_id TEXT PRIMARY KEY CHECK (LENGTH(branch_id) <= 30),
	manager_id TEXT CHECK (LENGTH(manager_id) <= 30),
	branch_address TEXT NOT NULL CHECK (LENGTH(branch_address) <= 50),
	contact_no TEXT NOT NULL CHECK (LENGTH(contact_no) <= 30),
	FOREIGN KEY(manager_id) REFERENCES employees (emp_id)
);

CREATE TABLE IF NOT EXISTS "employees" (
	emp_id TEXT PRIMARY KEY CHECK (LENGTH(emp_id) <= 30),
	emp_name TEXT NOT NULL CHECK (LENGTH(emp_name) <= 40),
	position TEXT NOT NULL CHECK (LENGTH(position) <= 40),
	salary NUMERIC(10, 2) NOT NULL CHECK (salary >= 0),
	branch_id TEXT NOT NULL,
	FOREIGN KEY(branch_id) REFERENCES branch (branch_id)
);

CREATE TABLE IF NOT EXISTS "members" (
	member_id TEXT PRIMARY KEY CHECK (LENGTH(member_id) <= 30),
	member_name TEXT NOT NULL CHECK (LENGTH(member_name) <= 40),
	member_address TEXT NOT NULL CHECK (LENGTH(member_address) <= 40),
	reg_date DATE NOT NULL
);

CREATE TABLE IF NOT EXISTS "books" (
	isbn TEXT PRIMARY KEY CHECK (LENGTH(isbn) <= 50),
	book_title TEXT NOT NULL CHECK (LENGTH(book_title) <= 80),
	category TEXT NOT NULL CHECK (LENGTH(category) <= 30),
	rental_price NUMERIC(10, 2) NOT NULL CHECK (rental_price >= 0),
	status TEXT DEFAULT 'Available' NOT NULL CHECK (status IN ('Available', 'Issued')),
	author TEXT NOT NULL CHECK (LENGTH(author) <= 30),
	publisher TEXT NOT NULL CHECK (LENGTH(publisher) <= 30)
);

CREATE TABLE IF NOT EXISTS "issued_status" (
	issued_id TEXT PRIMARY KEY CHECK (LENGTH(issued_id) <= 30),
	issued_member_id TEXT NOT NULL,
	issued_book_isbn TEXT NOT NULL,
	issued_emp_id TEXT NOT NULL,
	issued_date DATE NOT NULL,
	FOREIGN KEY(issued_member_id) REFERENCES members (member_id),
	FOREIGN KEY(issued_book_isbn) REFERENCES books (isbn),
	FOREIGN KEY(issued_emp_id) REFERENCES employees (emp_id)
);

CREATE TABLE IF NOT EXISTS "return_status" (
	return_id TEXT PRIMARY KEY CHECK (LENGTH(return_id) <= 30),
	issued_id TEXT NOT NULL UNIQUE,
	return_book_isbn TEXT NOT NULL,
	return_date DATE NOT NULL,
	FOREIGN KEY(issued_id) REFERENCES issued_status (issued_id),
	FOREIGN KEY(return_book_isbn) REFERENCES books (isbn)
);
"""


CREATE_POSTGRES = """CREATE TABLE IF NOT EXISTS "branch" (
	branch_id VARCHAR(30) PRIMARY KEY,
	manager_id VARCHAR(30),
	branch_address VARCHAR(50) NOT NULL,
	contact_no VARCHAR(30) NOT NULL
);

CREATE TABLE IF NOT EXISTS "employees" (
	emp_id VARCHAR(30) PRIMARY KEY,
	emp_name VARCHAR(40) NOT NULL,
	position VARCHAR(40) NOT NULL,
	salary NUMERIC(10, 2) NOT NULL CHECK (salary >= 0),
	branch_id VARCHAR(30) NOT NULL,
	FOREIGN KEY(branch_id) REFERENCES branch (branch_id)
);

ALTER TABLE "branch" DROP CONSTRAINT IF EXISTS fk_branch_manager;

ALTER TABLE "branch" ADD CONSTRAINT fk_branch_manager
	FOREIGN KEY(manager_id) REFERENCES employees (emp_id);

CREATE TABLE IF NOT EXISTS "members" (
	member_id VARCHAR(30) PRIMARY KEY,
	member_name VARCHAR(40) NOT NULL,
	member_address VARCHAR(40) NOT NULL,
	reg_date DATE NOT NULL
);

CREATE TABLE IF NOT EXISTS "books" (
	isbn VARCHAR(50) PRIMARY KEY,
	book_title VARCHAR(80) NOT NULL,
	category VARCHAR(30) NOT NULL,
	rental_price NUMERIC(10, 2) NOT NULL CHECK (rental_price >= 0),
	status VARCHAR(10) DEFAULT 'Available' NOT NULL CHECK (status IN ('Available', 'Issued')),
	author VARCHAR(30) NOT NULL,
	publisher VARCHAR(30) NOT NULL
);

CREATE TABLE IF NOT EXISTS "issued_status" (
	issued_id VARCHAR(30) PRIMARY KEY,
	issued_member_id VARCHAR(30) NOT NULL,
	issued_book_isbn VARCHAR(50) NOT NULL,
	issued_emp_id VARCHAR(30) NOT NULL,
	issued_date DATE NOT NULL,
	FOREIGN KEY(issued_member_id) REFERENCES members (member_id),
	FOREIGN KEY(issued_book_isbn) REFERENCES books (isbn),
	FOREIGN KEY(issued_emp_id) REFERENCES employees (emp_id)
);

CREATE TABLE IF NOT EXISTS "return_status" (
	return_id VARCHAR(30) PRIMARY KEY,
	issued_id VARCHAR(30) NOT NULL,
	return_book_isbn VARCHAR(50) NOT NULL,
	return_date DATE NOT NULL,
	FOREIGN KEY(issued_id) REFERENCES issued_status (issued_id),
	FOREIGN KEY(return_book_isbn) REFERENCES books (isbn),
	UNIQUE (issued_id)
);
"""

SCHEMAS = {
    "sqlite": CREATE_SQLITE,
    "postgres": CREATE_POSTGRES,
}


def schema_statements(db: str) -> list[str]:
    """Split the DDL script for ``db`` into executable statements."""
    return [stmt.strip() for stmt in SCHEMAS[db].split(";") if stmt.strip()]
