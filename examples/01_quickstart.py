#!/usr/bin/env python3
"""Example: Quickstart

Walks a sleepy node through discovery, registration, initialization and a
change query against an in-process SleepyProxy.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install sleepy-proxy
"""
from __future__ import annotations

import sleepy_proxy
from sleepy_proxy import Method, Request, SleepyProxy

NODE = "fe80::212:7402:2:202"
CLIENT = "fe80::99"


def main() -> None:
    print(f"sleepy-proxy version: {sleepy_proxy.__version__}")
    proxy = SleepyProxy()

    # Step 1: Discover the proxy
    found = proxy.handle(Request(Method.GET, NODE, [".well-known", "core"], ["rt=core.sp"]))
    print(f"Discovery: {found.code.value} {found.payload}")

    # Step 2: Register two resources
    created = proxy.handle(
        Request(Method.POST, NODE, ["sp"], ["ep=node42"], b'<sensors/temp>;rt="temperature",<config/led>')
    )
    print(f"Registration: {created.code.value} location={created.location_path}")
    location = created.location_path.strip("/").split("/")

    # Step 3: Initialize both resources, the sensor with a 60s lifetime
    proxy.handle(Request(Method.PUT, NODE, [*location, "sensors", "temp"], ["lt=60"], b"21.5"))
    proxy.handle(Request(Method.PUT, NODE, [*location, "config", "led"], payload=b"off"))

    # Step 4: A client reads the sensor and switches the LED on
    read = proxy.handle(Request(Method.GET, CLIENT, [*location, "sensors", "temp"]))
    print(f"Client read: {read.code.value} {read.payload}")
    proxy.handle(Request(Method.PUT, CLIENT, [*location, "config", "led"], payload=b"on"))

    # Step 5: The node wakes up and asks what changed
    changes = proxy.handle(Request(Method.POST, NODE, location))
    print(f"Change query: {changes.code.value} {changes.payload}")

    proxy.shutdown()
    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
