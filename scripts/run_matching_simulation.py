import logging
import os
import random
import time
from datetime import date, datetime
from typing import List

import pandas as pd

from matching.engine import MatchEngine
from matching.policy import default_policy
from optins.models import OptIn, PickupLocation, Role, TimeWindow
from rides.models import ParticipantStatus, RideStatus
from rides.store import InMemoryDatastore
from routing.optimizer import RouteOptimizer
from routing.providers import default_provider_chain


def load_optins(filepath="mock_optins.csv") -> List[OptIn]:
    # Resolve the correct path depending on where the user runs the script from.
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    df = pd.read_csv(os.path.join(base_dir, filepath))

    opt_ins = []
    for _, row in df.iterrows():
        capacity = row["driver_capacity"]
        opt_ins.append(
            OptIn(
                id=str(row["opt_in_id"]),
                user_id=str(row["user_id"]),
                commute_date=date.fromisoformat(row["commute_date"]),
                time_window=TimeWindow.from_hhmm(row["time_window_start"], row["time_window_end"]),
                pickup_location=PickupLocation.from_lng_lat(
                    str(row["pickup_location_id"]),
                    row["pickup_lng"],
                    row["pickup_lat"],
                    row["pickup_location_name"],
                ),
                role=Role(row["role"]),
                driver_capacity=None if pd.isna(capacity) else int(capacity),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
        )
    return opt_ins


def run_simulation(filepath="mock_optins.csv", dry_run=False, acceptance_probability=0.9):
    print("=== STARTING END-TO-END MATCHING SIMULATION ===")

    # 1. Load Data
    opt_ins = load_optins(filepath)
    if not opt_ins:
        print("No opt-ins to match.")
        return
    commute_date = opt_ins[0].commute_date
    store = InMemoryDatastore()
    store.add_opt_ins(opt_ins)
    print(f"Loaded {len(opt_ins)} opt-ins for {commute_date}.\n")

    # 2. Configure System (external providers are skipped unless configured in .env)
    engine = MatchEngine(store, optimizer=RouteOptimizer(default_provider_chain()), policy=default_policy())

    # 3. Run the batch
    start_time = time.time()
    summary = engine.run_batch(commute_date, dry_run=dry_run)
    print(
        f"Batch processed {summary.opt_ins_processed}/{summary.total_opt_ins} opt-ins, "
        f"{summary.candidates_considered} candidates, {summary.rides_created} rides "
        f"in {time.time() - start_time:.2f}s.\n"
    )

    print("--- Accepted Matches ---")
    for decision in summary.decisions:
        print(
            f"{decision.ride_id or 'DRY-RUN'} -> {len(decision.opt_in_ids)} commuters, "
            f"confidence {decision.confidence}, {decision.cost_per_person} BDT each"
        )

    if dry_run:
        print("\n=== DRY RUN COMPLETE ===")
        return summary

    # 4. Simulate participants answering the proposal
    lifecycle = engine.lifecycle
    for decision in summary.decisions:
        for participant in store.list_participants(decision.ride_id):
            if store.get_ride(decision.ride_id).status != RideStatus.PROPOSED:
                break
            answer = (
                ParticipantStatus.CONFIRMED
                if random.random() < acceptance_probability
                else ParticipantStatus.DECLINED
            )
            lifecycle.respond(decision.ride_id, participant.user_id, answer)

    confirmed = sum(1 for d in summary.decisions if store.get_ride(d.ride_id).status == RideStatus.CONFIRMED)
    cancelled = sum(1 for d in summary.decisions if store.get_ride(d.ride_id).status == RideStatus.CANCELLED)

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Rides Confirmed: {confirmed} / {summary.rides_created}")
    print(f"Rides Cancelled: {cancelled} / {summary.rides_created}")
    if summary.errors:
        print(f"Errors: {len(summary.errors)}")
        for error in summary.errors:
            print(f"  - {error}")
    return summary


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_simulation()
