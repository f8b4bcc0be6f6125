from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional

from graphql import (
    ExecutionResult,
    GraphQLError,
    GraphQLSchema,
    build_schema,
    graphql,
)
from graphql.language import ast

from schoolgraph.context import RequestContext

SDL = """
scalar Date

enum Role {
  operator
  acadir
  student
}

type User {
  id: ID!
  first_name: String!
  last_name: String!
  email: String!
  role: Role!
  created_at: Date
  updated_at: Date
  deleted_at: Date
}

type Student {
  id: ID!
  first_name: String!
  last_name: String!
  email: String!
  date_of_birth: Date
  school_id: ID!
  school: School
  created_at: Date
  updated_at: Date
  deleted_at: Date
}

type School {
  id: ID!
  name: String!
  address: String
  students: [Student!]!
  created_at: Date
  updated_at: Date
  deleted_at: Date
}

input CreateUserInput {
  first_name: String!
  last_name: String!
  email: String!
  password: String!
  role: Role
}

input UpdateUserInput {
  first_name: String
  last_name: String
  email: String
  password: String
  role: Role
}

input CreateSchoolInput {
  name: String!
  address: String
}

input UpdateSchoolInput {
  name: String
  address: String
}

input CreateStudentInput {
  first_name: String!
  last_name: String!
  email: String!
  date_of_birth: Date
  school_id: ID!
}

input UpdateStudentInput {
  first_name: String
  last_name: String
  email: String
  date_of_birth: Date
  school_id: ID
}

type Query {
  GetAllUsers: [User!]!
  GetOneUser(id: ID!): User
  GetAllStudents: [Student!]!
  GetOneStudent(id: ID!): Student
  GetAllSchools: [School!]!
  GetOneSchool(id: ID!): School
}

type Mutation {
  CreateUser(input: CreateUserInput!): User
  UpdateUser(id: ID!, input: UpdateUserInput!): User
  DeleteUser(id: ID!): User
  CreateSchool(input: CreateSchoolInput!): School
  UpdateSchool(id: ID!, input: UpdateSchoolInput!): School
  DeleteSchool(id: ID!): School
  CreateStudent(input: CreateStudentInput!): Student
  UpdateStudent(id: ID!, input: UpdateStudentInput!): Student
  DeleteStudent(id: ID!): Student
}
"""


def _serialize_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, str):
        return value
    raise GraphQLError("Date cannot represent value: {!r}".format(value))


def _parse_date(value: Any) -> date:
    if not isinstance(value, str):
        raise GraphQLError("Date should be a string, {!r} given".format(value))
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise GraphQLError("Invalid ISO-8601 date: {!r}".format(value))


def _parse_date_literal(value_node: ast.ValueNode, *_args: Any) -> date:
    if not isinstance(value_node, ast.StringValueNode):
        raise GraphQLError("Date should be a string literal")
    return _parse_date(value_node.value)


# Query


def get_all_users(_, info):
    ctx: RequestContext = info.context
    users = ctx.repositories.users.list()
    for user in users:
        ctx.loaders.user_by_id.prime(user["id"], user)
    return users


def get_one_user(_, info, id):
    return info.context.loaders.user_by_id.load(id)


def get_all_students(_, info):
    ctx: RequestContext = info.context
    students = ctx.repositories.students.list()
    for student in students:
        ctx.loaders.student_by_id.prime(student["id"], student)
    return students


def get_one_student(_, info, id):
    return info.context.loaders.student_by_id.load(id)


def get_all_schools(_, info):
    ctx: RequestContext = info.context
    schools = ctx.repositories.schools.list()
    for school in schools:
        ctx.loaders.school_by_id.prime(school["id"], school)
    return schools


def get_one_school(_, info, id):
    return info.context.loaders.school_by_id.load(id)


# Relations


def student_school(student, info):
    return info.context.loaders.school_by_id.load(student["school_id"])


def school_students(school, info):
    return info.context.loaders.students_by_school.load(school["id"])


# Mutation


def create_user(_, info, input):
    return info.context.repositories.users.create(input)


def update_user(_, info, id, input):
    ctx: RequestContext = info.context
    ctx.loaders.user_by_id.clear(id)
    return ctx.repositories.users.update(id, input)


def delete_user(_, info, id):
    ctx: RequestContext = info.context
    ctx.loaders.user_by_id.clear(id)
    return ctx.repositories.users.soft_delete(id)


def create_school(_, info, input):
    return info.context.repositories.schools.create(input)


def update_school(_, info, id, input):
    ctx: RequestContext = info.context
    ctx.loaders.school_by_id.clear(id)
    return ctx.repositories.schools.update(id, input)


def delete_school(_, info, id):
    ctx: RequestContext = info.context
    ctx.loaders.school_by_id.clear(id)
    ctx.loaders.students_by_school.clear(id)
    return ctx.repositories.schools.soft_delete(id)


def _forget_student(ctx: RequestContext, student: Optional[Mapping]) -> None:
    if student is not None:
        ctx.loaders.student_by_id.clear(student["id"])
        ctx.loaders.students_by_school.clear(student["school_id"])


def create_student(_, info, input):
    ctx: RequestContext = info.context
    student = ctx.repositories.students.create(input)
    _forget_student(ctx, student)
    return student


def update_student(_, info, id, input):
    ctx: RequestContext = info.context
    _forget_student(ctx, ctx.repositories.students.get(id))
    student = ctx.repositories.students.update(id, input)
    _forget_student(ctx, student)
    return student


def delete_student(_, info, id):
    ctx: RequestContext = info.context
    student = ctx.repositories.students.soft_delete(id)
    _forget_student(ctx, student)
    return student


RESOLVERS: Dict[str, Dict[str, Callable]] = {
    "Query": {
        "GetAllUsers": get_all_users,
        "GetOneUser": get_one_user,
        "GetAllStudents": get_all_students,
        "GetOneStudent": get_one_student,
        "GetAllSchools": get_all_schools,
        "GetOneSchool": get_one_school,
    },
    "Mutation": {
        "CreateUser": create_user,
        "UpdateUser": update_user,
        "DeleteUser": delete_user,
        "CreateSchool": create_school,
        "UpdateSchool": update_school,
        "DeleteSchool": delete_school,
        "CreateStudent": create_student,
        "UpdateStudent": update_student,
        "DeleteStudent": delete_student,
    },
    "Student": {
        "school": student_school,
    },
    "School": {
        "students": school_students,
    },
}


def create_schema() -> GraphQLSchema:
    schema = build_schema(SDL)

    date_type = schema.type_map["Date"]
    date_type.serialize = _serialize_date  # type: ignore[attr-defined]
    date_type.parse_value = _parse_date  # type: ignore[attr-defined]
    date_type.parse_literal = _parse_date_literal  # type: ignore[attr-defined]
    # graphql-core 3.3 coerces inputs through these instead of parse_*
    if hasattr(date_type, "coerce_input_value"):
        date_type.coerce_input_value = _parse_date
    if hasattr(date_type, "coerce_input_literal"):
        date_type.coerce_input_literal = _parse_date_literal

    for type_name, resolvers in RESOLVERS.items():
        fields = schema.type_map[type_name].fields  # type: ignore[union-attr]
        for field_name, resolver in resolvers.items():
            fields[field_name].resolve = resolver
    return schema


async def execute(
    schema: GraphQLSchema,
    query: str,
    variables: Optional[Dict[str, Any]] = None,
    operation_name: Optional[str] = None,
    context: Optional[RequestContext] = None,
) -> ExecutionResult:
    return await graphql(
        schema,
        query,
        variable_values=variables,
        operation_name=operation_name,
        context_value=context,
    )
