"""Test that the short quickstart API works for sleepy-proxy."""
from __future__ import annotations


def test_quickstart_import() -> None:
    from sleepy_proxy import SleepyProxy

    proxy = SleepyProxy()
    assert proxy.resolve(["sp"]) is not None


def test_quickstart_register_and_read() -> None:
    from sleepy_proxy import Method, Request, ResponseCode, SleepyProxy

    proxy = SleepyProxy()
    created = proxy.handle(
        Request(Method.POST, "10.0.0.7", ["sp"], ["ep=node42"], b"<temp>;rt=\"temperature\"")
    )
    assert created.code is ResponseCode.CREATED

    proxy.handle(Request(Method.PUT, "10.0.0.7", ["sp", "0", "temp"], payload=b"21.5"))
    read = proxy.handle(Request(Method.GET, "10.0.0.99", ["sp", "0", "temp"]))
    assert read.payload == "21.5"


def test_quickstart_version() -> None:
    import sleepy_proxy

    assert isinstance(sleepy_proxy.__version__, str)
