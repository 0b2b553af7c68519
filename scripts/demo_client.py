#!/usr/bin/env python3
"""
Demo Client - Pointer Stream

This client behaves like the browser "Interact" page:
1. Connects to the bridge and prints its state snapshot
2. Optionally switches the routing mode (and asks to be active)
3. Streams a pointer moving on a circle as /mouse/x, /mouse/y, /mouse/xy
4. Presses (/press 1) and releases (/press 0) once per revolution
5. Prints every state / userCount frame the bridge pushes

Usage:
    python scripts/demo_client.py [--url ws://localhost:8000] [--mode blended]
                                  [--active] [--rate 30] [--phase 0.0]

Run several instances with different --phase values to see blended and
zones routing on the OSC side.
"""

import argparse
import asyncio
import json
import math
import sys

import websockets


def data_envelope(address: str, args: list) -> str:
    """Create a data envelope."""
    return json.dumps({"address": address, "args": args})


def control_envelope(type_: str, **fields) -> str:
    """Create a control envelope."""
    return json.dumps({"type": type_, **fields})


async def print_frames(ws) -> None:
    """Print everything the bridge pushes to us."""
    async for raw in ws:
        data = json.loads(raw)
        msg_type = data.get("type")

        if msg_type == "state":
            active = "active" if data["isActive"] else "muted"
            zone = f", zone {data['zone']}" if data.get("zone") is not None else ""
            print(
                f"\n📋 state: user {data['userId']}, mode {data['mode']}, "
                f"{data['totalUsers']} user(s){zone}, {active}"
            )
        elif msg_type == "userCount":
            print(f"\n👥 users connected: {data['count']}")
        else:
            print(f"\n   ? Received: {json.dumps(data)}")


async def stream_pointer(ws, rate: float, phase: float, period: float) -> None:
    """Move around a circle forever, pressing once per revolution."""
    interval = 1.0 / rate
    steps = max(int(period * rate), 1)
    step = 0

    while True:
        angle = 2 * math.pi * (step / steps + phase)
        x = 0.5 + 0.35 * math.cos(angle)
        y = 0.5 + 0.35 * math.sin(angle)

        await ws.send(data_envelope("/mouse/x", [x]))
        await ws.send(data_envelope("/mouse/y", [y]))
        await ws.send(data_envelope("/mouse/xy", [x, y]))

        if step % steps == 0:
            await ws.send(data_envelope("/press", [1]))
        elif step % steps == steps // 2:
            await ws.send(data_envelope("/press", [0]))

        sys.stdout.write(f"\r/mouse/xy [{x:.3f}, {y:.3f}]    ")
        sys.stdout.flush()

        step += 1
        await asyncio.sleep(interval)


async def main() -> None:
    parser = argparse.ArgumentParser(description="OSC bridge demo client")
    parser.add_argument("--url", default="ws://localhost:8000", help="Bridge WebSocket URL")
    parser.add_argument("--mode", help="Routing mode to switch to after connecting")
    parser.add_argument("--active", action="store_true", help="Request to be the active user")
    parser.add_argument("--rate", type=float, default=30.0, help="Samples per second")
    parser.add_argument("--phase", type=float, default=0.0, help="Starting phase (0-1)")
    parser.add_argument("--period", type=float, default=4.0, help="Seconds per revolution")
    args = parser.parse_args()

    print("=" * 70)
    print("🖱️  OSC BRIDGE DEMO CLIENT")
    print("=" * 70)
    print(f"🔗 Connecting to {args.url}")

    try:
        async with websockets.connect(args.url) as ws:
            print("✅ Connected")

            if args.mode:
                await ws.send(control_envelope("setMode", mode=args.mode))
            if args.active:
                await ws.send(control_envelope("requestActive"))

            reader = asyncio.create_task(print_frames(ws))
            try:
                await stream_pointer(ws, args.rate, args.phase, args.period)
            finally:
                reader.cancel()

    except ConnectionRefusedError:
        print("\n" + "=" * 70)
        print("❌ CONNECTION ERROR")
        print("=" * 70)
        print("Cannot connect to the OSC bridge!")
        print("💡 Start the server with:")
        print("   python -m oscbridge")
        print("=" * 70)
        sys.exit(1)
    except websockets.ConnectionClosed:
        print("\n\n🔌 Connection closed by the bridge")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\n" + "=" * 70)
        print("👋 DEMO CLIENT SHUTTING DOWN")
        print("=" * 70)
