import pytest

from portcullis.domain.security.client_ip import get_client_ip


@pytest.mark.parametrize(
    "headers,peer,expected",
    [
        (
            {"cf-connecting-ip": "1.1.1.1", "x-real-ip": "2.2.2.2", "x-forwarded-for": "3.3.3.3"},
            "9.9.9.9",
            "1.1.1.1",
        ),
        ({"x-real-ip": "2.2.2.2", "x-forwarded-for": "3.3.3.3"}, "9.9.9.9", "2.2.2.2"),
        ({"x-forwarded-for": " 3.3.3.3 , 10.0.0.1, 10.0.0.2"}, "9.9.9.9", "3.3.3.3"),
        ({}, "9.9.9.9", "9.9.9.9"),
        ({}, None, "unknown"),
        ({"cf-connecting-ip": "  ", "x-forwarded-for": ","}, None, "unknown"),
    ],
)
def test_header_precedence(headers, peer, expected):
    assert get_client_ip(headers, peer) == expected
