"""Tests for oasir.routes.naming."""

from __future__ import annotations

import pytest

from oasir.routes.naming import derive_handler_name, handler_name, to_snake_case


class TestToSnakeCase:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("getUserById", "get_user_by_id"),
            ("GetUsers", "get_users"),
            ("listPets", "list_pets"),
            ("already_snake", "already_snake"),
            ("getHTTPStatus", "get_h_t_t_p_status"),
        ],
    )
    def test_conversion(self, value: str, expected: str) -> None:
        assert to_snake_case(value) == expected


class TestHandlerName:
    def test_operation_id_wins(self) -> None:
        assert handler_name("createPet", "POST", "/pets") == "create_pet"

    @pytest.mark.parametrize(
        "method, path, expected",
        [
            ("GET", "/users/{id}", "get_users_id"),
            ("DELETE", "/pets/{petId}", "delete_pets_petId"),
            ("POST", "/", "post_"),
            ("PUT", "/a/b/c", "put_a_b_c"),
        ],
    )
    def test_derived(self, method: str, path: str, expected: str) -> None:
        assert derive_handler_name(method, path) == expected
        assert handler_name(None, method, path) == expected

    def test_empty_operation_id_is_ignored(self) -> None:
        assert handler_name("", "GET", "/a") == "get_a"
