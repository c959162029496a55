from pathlib import PurePosixPath

import pytest

from crakit.qsync.naming import file_path_to_vec_string, to_pascal_case


def test_file_path_to_vec_string():
    result = file_path_to_vec_string("/home/user/path/to/file.rs")
    assert result == ["", "Home", "User", "Path", "To", "File"]


def test_file_path_accepts_path_objects():
    result = file_path_to_vec_string(PurePosixPath("/home/user/path/to/file.rs"))
    assert result == ["", "Home", "User", "Path", "To", "File"]


def test_relative_path_has_no_root_component():
    assert file_path_to_vec_string("backend/services/todo.rs") == ["Backend", "Services", "Todo"]


def test_repeated_rs_extension_is_trimmed():
    assert file_path_to_vec_string("todo.rs.rs") == ["Todo"]


def test_snake_case_components_become_pascal_case():
    assert file_path_to_vec_string("src/todo_items.rs") == ["Src", "TodoItems"]


@pytest.mark.parametrize(
    "text,expected",
    [
        ("", ""),
        ("/", ""),
        ("home", "Home"),
        ("hello_world", "HelloWorld"),
        ("foo-bar", "FooBar"),
        ("fooBar", "FooBar"),
        ("FooBar", "FooBar"),
        ("HTTPServer", "HttpServer"),
        ("foo bar baz", "FooBarBaz"),
    ],
)
def test_to_pascal_case(text, expected):
    assert to_pascal_case(text) == expected


def test_pascal_case_is_idempotent():
    once = to_pascal_case("some_mixed-Input value")
    assert to_pascal_case(once) == once