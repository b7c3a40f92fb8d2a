#!/usr/bin/env python3
"""
Startup script: free the configured ports, then start the orchestrator and, for the http executor, the agent service.
Optional: --no-kill, --background, --list-ports, --with-agent.
"""
import argparse
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

import httpx

from src.core.config.env import load_project_env
from src.core.config.loader import load_engine_config
from src.core.exceptions import ConfigError

PID_FILE = ROOT / "scripts" / ".startup_pids"

processes = []


def get_pids_on_port(port: int) -> list[int]:
    """PIDs listening on the given port (macOS/Linux, via lsof)."""
    try:
        result = subprocess.run(["lsof", "-ti", f":{port}"], cwd=str(ROOT), capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return []
    out = (result.stdout or "").strip()
    if result.returncode != 0 or not out:
        return []
    return [int(x) for x in out.split() if x.strip().isdigit()]


def kill_ports(ports: list[int]) -> None:
    killed = False
    for port in sorted(ports, reverse=True):
        for pid in get_pids_on_port(port):
            try:
                subprocess.run(["kill", "-9", str(pid)], check=True, timeout=5)
                print(f"  Killed PID {pid} on port {port}")
                killed = True
            except subprocess.CalledProcessError as e:
                print(f"  Warning: failed to kill PID {pid} on port {port}: {e}", file=sys.stderr)
    if killed:
        time.sleep(2)


def wait_for_health(url: str, timeout: int = 30) -> bool:
    start = time.time()
    while time.time() - start < timeout:
        try:
            if httpx.get(f"{url}/health", timeout=2).status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(0.5)
    return False


def start(module: list[str], env: dict, background: bool) -> subprocess.Popen:
    proc = subprocess.Popen(
        [sys.executable, "-m", *module],
        cwd=str(ROOT),
        env=env,
        stdout=subprocess.DEVNULL if background else None,
        stderr=subprocess.PIPE if background else None,
    )
    processes.append(proc)
    return proc


def cleanup(sig=None, frame=None):
    for p in processes:
        try:
            p.terminate()
            p.wait(timeout=5)
        except subprocess.TimeoutExpired:
            p.kill()
    if PID_FILE.exists():
        PID_FILE.unlink()
    sys.exit(0)


def main():
    parser = argparse.ArgumentParser(description="Free app ports, then start the orchestrator (and agent service).")
    parser.add_argument("--config", default=os.environ.get("CONFIG_PATH", "config/engine.json"), help="Engine config path")
    parser.add_argument("--no-kill", action="store_true", help="Do not kill processes on ports; only start")
    parser.add_argument("--background", action="store_true", help="Run in background; write PIDs to scripts/.startup_pids")
    parser.add_argument("--list-ports", action="store_true", help="Only list configured ports and which are in use")
    parser.add_argument("--with-agent", action="store_true", help="Start the agent service even for the langchain executor")
    args = parser.parse_args()

    load_project_env(ROOT)
    try:
        config = load_engine_config(args.config, project_root=ROOT)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    start_agent = args.with_agent or config.executor.type == "http"
    ports = [config.orchestrator.port] + ([config.agent.port] if start_agent else [])

    if args.list_ports:
        print("Ports from config:", sorted(ports))
        for port in sorted(ports):
            pids = get_pids_on_port(port)
            print(f"  {port}: {f'in use (PIDs {pids})' if pids else 'free'}")
        return

    if not args.no_kill:
        print("Freeing ports...")
        kill_ports(ports)

    env = {**os.environ, "CONFIG_PATH": args.config}

    if start_agent:
        proc = start(["src.agent.main", "--config-path", args.config], env, args.background)
        print(f"Agent started on port {config.agent.port} (PID {proc.pid})")
        if not wait_for_health(f"http://127.0.0.1:{config.agent.port}"):
            print("Warning: agent did not report healthy yet", file=sys.stderr)

    proc = start(["src.orchestrator.main"], {**env, "PORT": str(config.orchestrator.port)}, args.background)
    print(f"Orchestrator started on port {config.orchestrator.port} (PID {proc.pid})")

    if args.background:
        PID_FILE.parent.mkdir(parents=True, exist_ok=True)
        PID_FILE.write_text("\n".join(str(p.pid) for p in processes))
        print(f"All running in background. PIDs saved to {PID_FILE}")
        return

    signal.signal(signal.SIGINT, cleanup)
    signal.signal(signal.SIGTERM, cleanup)
    print("All running. Press Ctrl+C to stop.")
    while True:
        time.sleep(1)
        for p in processes:
            if p.poll() is not None:
                print(f"Process {p.pid} exited.")
                cleanup()


if __name__ == "__main__":
    main()
