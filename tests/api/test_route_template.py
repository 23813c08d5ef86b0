import pytest

from api.middleware.metrics import route_template


@pytest.mark.parametrize("template, path, expected", [
    ("/api/v1/users/{user_id}", "/api/v1/users/7", "/api/v1/users/{user_id}"),
    ("/users/{user_id}", "/api/v1/users/7", "/api/v1/users/{user_id}"),
    ("/users", "/api/v1/users", "/api/v1/users"),
    ("/customers/{customer_id}", "/api/v1/customers/2", "/api/v1/customers/{customer_id}"),
    ("/health", "/health", "/health"),
    ("/files/{name:path}", "/api/v1/files/a/b/c", "/files/{name:path}"),
    (None, "/nowhere", "unmatched"),
])
def test_route_template(template, path, expected):
    assert route_template(template, path) == expected
