"""
Offline Simulation

Feeds a synthetic interval stream through a session engine, the same way a
sensor callback would, and prints the metrics published to an in-memory
relay.

Usage:
    hrvstream-simulate --beats 120 --heart-rate 70 --seed 7
"""
import argparse
import asyncio
import json
import threading
from typing import List, Optional

from hrvstream.core.ingestion import (
    SensorStream,
    SyntheticIntervalSource,
    IntervalSourceConfig,
    load_interval_recording,
)
from hrvstream.core.session import HrvEngine, SessionContext
from hrvstream.services.relay import InMemoryRelay
from hrvstream.utils import get_logger, setup_logging

logger = get_logger(__name__)


def _sensor_thread(stream: SensorStream, intervals: List[float], heart_rate_every: int) -> None:
    """Stand-in for the vendor SDK callback thread."""
    for i, interval in enumerate(intervals, start=1):
        stream.feed_interval(interval)
        if heart_rate_every and i % heart_rate_every == 0 and interval > 0:
            stream.feed_heart_rate(round(60000.0 / interval))
    stream.stop()


async def run_simulation(
    beats: int,
    heart_rate_bpm: float,
    artifact_probability: float,
    heart_rate_every: int,
    seed: Optional[int],
    recording: Optional[List[float]] = None
) -> dict:
    """Run one simulated (or replayed) session and return its summary."""
    if recording is None:
        source = SyntheticIntervalSource(
            IntervalSourceConfig(
                heart_rate_bpm=heart_rate_bpm,
                artifact_probability=artifact_probability,
            ),
            seed=seed,
        )
        intervals = source.generate(beats)
    else:
        intervals = recording
    relay = InMemoryRelay()
    context = SessionContext(user_id=0, device_code="SIM")

    with HrvEngine(context=context, relay=relay) as engine:
        stream = SensorStream(engine)
        runner = asyncio.create_task(stream.run())
        # Let the consumer bind to the loop before the producer starts
        await asyncio.sleep(0)

        producer = threading.Thread(
            target=_sensor_thread,
            args=(stream, intervals, heart_rate_every),
            daemon=True,
        )
        producer.start()
        processed = await runner
        producer.join()

        band_power = engine.flush(timeout=5.0)
        summary = {
            "events": processed,
            "published": len(relay.messages),
            "hrv": engine.hrv,
            **band_power.to_dict(),
            **{k: v for k, v in engine.get_stats().items() if k in ("accepted", "rejected")},
        }
        logger.info(f"Simulation finished: {processed} events, {len(relay.messages)} published")

    return summary


def main_cli(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Simulate a streaming HRV session")
    parser.add_argument("--beats", type=int, default=120, help="Number of intervals to generate")
    parser.add_argument("--heart-rate", type=float, default=65.0, help="Mean heart rate (bpm)")
    parser.add_argument("--artifacts", type=float, default=0.0, help="Artifact probability per beat")
    parser.add_argument("--hr-every", type=int, default=5, help="Emit a heart-rate notification every N beats (0 = never)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--csv", default=None, help="Replay intervals from a CSV recording instead")
    parser.add_argument("--column", default=None, help="Interval column in the CSV recording")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    summary = asyncio.run(run_simulation(
        beats=args.beats,
        heart_rate_bpm=args.heart_rate,
        artifact_probability=args.artifacts,
        heart_rate_every=args.hr_every,
        seed=args.seed,
        recording=load_interval_recording(args.csv, args.column) if args.csv else None,
    ))
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main_cli()
