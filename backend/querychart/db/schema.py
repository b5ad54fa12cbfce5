from typing import Tuple
from pydantic import BaseModel, ConfigDict

class ColumnSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    nullable: bool = True
    description: str = ""

class TableSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    columns: Tuple[ColumnSchema, ...] = ()

def _col(name: str, type_: str, description: str, nullable: bool = False) -> ColumnSchema:
    return ColumnSchema(name=name, type=type_, nullable=nullable, description=description)

# Target database description used to ground the refine stage. Read-only.
DATABASE_SCHEMA: Tuple[TableSchema, ...] = (
    TableSchema(
        name="departments",
        description="Stores department information",
        columns=(
            _col("department_id", "serial", "Primary key"),
            _col("name", "varchar(100)", "Department name"),
            _col("location", "varchar(100)", "Location of the department"),
        ),
    ),
    TableSchema(
        name="employees",
        description="Stores employee information",
        columns=(
            _col("employee_id", "serial", "Primary key"),
            _col("name", "varchar(100)", "Employee name"),
            _col("department_id", "int", "Reference to departments table"),
            _col("hire_date", "date", "Hire date of the employee"),
            _col("salary", "numeric(10,2)", "Salary of the employee"),
        ),
    ),
    TableSchema(
        name="sales",
        description="Stores sales records",
        columns=(
            _col("sale_id", "serial", "Primary key"),
            _col("employee_id", "int", "Reference to employees table"),
            _col("sale_date", "date", "Date of the sale"),
            _col("amount", "numeric(10,2)", "Amount of the sale"),
        ),
    ),
    TableSchema(
        name="projects",
        description="Stores project information",
        columns=(
            _col("project_id", "serial", "Primary key"),
            _col("name", "varchar(100)", "Project name"),
            _col("start_date", "date", "Start date of the project"),
            _col("end_date", "date", "End date of the project"),
            _col("budget", "numeric(10,2)", "Budget for the project"),
        ),
    ),
)
