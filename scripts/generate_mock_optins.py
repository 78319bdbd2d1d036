import pandas as pd
import numpy as np
import uuid
from datetime import date, datetime, timedelta, timezone


def generate_mock_optins(num_optins=120, num_pickup_points=12, driver_share=0.25,
                         commute_date=None, output_file="mock_optins.csv", seed=None):
    """
    Generates a realistic dataset of commuter opt-ins designed to exercise the matching engine.
    A fixed set of pickup points (bus stops, gates, landmarks) makes several commuters
    share or nearly share a pickup, which produces good clustering scenarios.
    """
    rng = np.random.default_rng(seed)
    commute_date = commute_date or (date.today() + timedelta(days=1))

    # Campus destination is ~(23.8103, 90.4125); pickups spread over ~15 km around it
    CENTER_LAT = 23.7806
    CENTER_LON = 90.4070

    # 1. Generate fixed pickup points
    pickup_points = []
    for point_index in range(num_pickup_points):
        pickup_points.append({
            "id": f"p_{str(uuid.uuid4())[:8]}",
            "name": f"Pickup Point {point_index + 1}",
            "lat": CENTER_LAT + rng.uniform(-0.06, 0.06),
            "lon": CENTER_LON + rng.uniform(-0.06, 0.06),
        })

    data = []
    now = datetime.now(timezone.utc)

    # 2. Generate opt-ins
    for optin_index in range(num_optins):
        point = pickup_points[rng.integers(0, len(pickup_points))]
        is_driver = rng.random() < driver_share

        # Departures between 07:00 and 09:30, windows of 20-90 minutes
        start_minute = int(rng.integers(7 * 60, 9 * 60 + 30))
        window_length = int(rng.choice([20, 30, 45, 60, 90]))
        end_minute = min(start_minute + window_length, 24 * 60 - 1)

        data.append({
            "opt_in_id": f"oi_{str(optin_index + 1).zfill(5)}",
            "user_id": f"u_{str(optin_index + 1).zfill(5)}",
            "created_at": (now - timedelta(minutes=int(rng.integers(0, 600)))).isoformat(),
            "commute_date": commute_date.isoformat(),
            "time_window_start": f"{start_minute // 60:02d}:{start_minute % 60:02d}",
            "time_window_end": f"{end_minute // 60:02d}:{end_minute % 60:02d}",
            "pickup_location_id": point["id"],
            "pickup_location_name": point["name"],
            # jitter a few metres so nearby riders are not all on the exact same point
            "pickup_lat": np.round(point["lat"] + rng.normal(0, 0.0008), 6),
            "pickup_lng": np.round(point["lon"] + rng.normal(0, 0.0008), 6),
            "role": "DRIVER" if is_driver else "RIDER",
            "driver_capacity": int(rng.integers(1, 5)) if is_driver else None,
        })

    # 3. Save to CSV
    df = pd.DataFrame(data)
    df["driver_capacity"] = df["driver_capacity"].astype("Int64")
    df.to_csv(output_file, index=False)
    print(f"Generated {num_optins} opt-ins for {commute_date} and saved to '{output_file}'")

    # Print a quick preview of clustering density
    print("\nTop 5 Pickup Points (Matching Potential):")
    counts = df.groupby("pickup_location_name")["role"].value_counts().unstack(fill_value=0)
    counts["total"] = counts.sum(axis=1)
    for name, row in counts.sort_values("total", ascending=False).head(5).iterrows():
        print(f"  {name}: {row.get('DRIVER', 0)} drivers, {row.get('RIDER', 0)} riders")

    return df


if __name__ == "__main__":
    generate_mock_optins(num_optins=120, num_pickup_points=12)
