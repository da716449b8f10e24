# tools/seed_flights_db.py
# Create a small flights database with the schema the assistant's prompts expect.
#
#   python tools/seed_flights_db.py flights.db
import sys

from sqlalchemy import create_engine, text

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS airports (
        airport_code TEXT PRIMARY KEY,
        airport_name TEXT,
        city_name TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gates (
        gate_id INTEGER PRIMARY KEY,
        gate_number TEXT,
        terminal TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS flights (
        flight_number TEXT PRIMARY KEY,
        flight_status TEXT,
        scheduled_departure TEXT,
        actual_departure TEXT,
        scheduled_arrival TEXT,
        actual_arrival TEXT,
        aircraft_type TEXT,
        passenger_count INTEGER,
        captain_name TEXT,
        cabin_lead_name TEXT,
        origin_airport_code TEXT REFERENCES airports(airport_code),
        destination_airport_code TEXT REFERENCES airports(airport_code),
        gate_id INTEGER REFERENCES gates(gate_id)
    )
    """,
]

AIRPORTS = [
    ("SFO", "San Francisco International Airport", "San Francisco"),
    ("ORD", "O'Hare International Airport", "Chicago"),
    ("EWR", "Newark Liberty International Airport", "Newark"),
    ("DEN", "Denver International Airport", "Denver"),
    ("IAH", "George Bush Intercontinental Airport", "Houston"),
]

GATES = [
    (1, "C6", "Terminal 3"),
    (2, "F11", "Terminal 1"),
    (3, "B22", "Terminal B"),
]

FLIGHTS = [
    ("UA1214", "On Time", "2024-05-01 08:15", None, "2024-05-01 14:20", None,
     "Boeing 737-900", 172, "Maria Chen", "David Park", "SFO", "ORD", 1),
    ("UA523", "Delayed", "2024-05-01 09:40", "2024-05-01 10:25", "2024-05-01 18:05", None,
     "Boeing 757-200", 168, "James Wright", "Aisha Khan", "SFO", "EWR", 2),
    ("UA887", "Boarding", "2024-05-01 11:00", None, "2024-05-01 14:30", None,
     "Airbus A320", 141, "Elena Rossi", "Tom Baker", "DEN", "IAH", 3),
    ("UA302", "Cancelled", "2024-05-01 13:10", None, "2024-05-01 16:45", None,
     "Boeing 737 MAX 8", 0, "Sam Patel", "Lena Fischer", "ORD", "DEN", None),
]

path = sys.argv[1] if len(sys.argv) > 1 else "flights.db"
engine = create_engine(f"sqlite:///{path}")

with engine.begin() as conn:
    for statement in SCHEMA:
        conn.execute(text(statement))

    conn.execute(
        text("INSERT OR REPLACE INTO airports VALUES (:code, :name, :city)"),
        [{"code": c, "name": n, "city": city} for c, n, city in AIRPORTS],
    )
    conn.execute(
        text("INSERT OR REPLACE INTO gates VALUES (:id, :number, :terminal)"),
        [{"id": i, "number": n, "terminal": t} for i, n, t in GATES],
    )
    keys = [
        "flight_number", "flight_status", "scheduled_departure", "actual_departure",
        "scheduled_arrival", "actual_arrival", "aircraft_type", "passenger_count",
        "captain_name", "cabin_lead_name", "origin_airport_code",
        "destination_airport_code", "gate_id",
    ]
    conn.execute(
        text(f"INSERT OR REPLACE INTO flights VALUES ({', '.join(':' + k for k in keys)})"),
        [dict(zip(keys, row)) for row in FLIGHTS],
    )

print(f"seeded {path}: {len(AIRPORTS)} airports, {len(GATES)} gates, {len(FLIGHTS)} flights")
