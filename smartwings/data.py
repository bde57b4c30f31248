# smartwings/data.py
# In-memory inventory used by the default catalog and the status board.

MOCK_FLIGHTS = [
    {
        "id": "SW101-001",
        "flight_number": "SW101",
        "airline": "SmartWings",
        "departure": {"airport": "JFK", "city": "New York", "time": "08:30", "gate": "A12"},
        "arrival": {"airport": "LAX", "city": "Los Angeles", "time": "11:45", "gate": "B15"},
        "duration": "5h 15m",
        "price": {"economy": 299, "business": 799, "first": 1299},
        "seats": {"economy": 45, "business": 12, "first": 4},
        "aircraft": "Boeing 737-800",
    },
    {
        "id": "SW102-001",
        "flight_number": "SW102",
        "airline": "SmartWings",
        "departure": {"airport": "JFK", "city": "New York", "time": "14:20", "gate": "C8"},
        "arrival": {"airport": "LAX", "city": "Los Angeles", "time": "17:55", "gate": "A7"},
        "duration": "5h 35m",
        "price": {"economy": 349, "business": 899, "first": 1399},
        "seats": {"economy": 28, "business": 8, "first": 2},
        "aircraft": "Airbus A321",
    },
    {
        "id": "SW103-001",
        "flight_number": "SW103",
        "airline": "SmartWings",
        "departure": {"airport": "JFK", "city": "New York", "time": "19:15", "gate": "D4"},
        "arrival": {"airport": "LAX", "city": "Los Angeles", "time": "22:30", "gate": "C12"},
        "duration": "5h 15m",
        "price": {"economy": 279, "business": 749, "first": 1199},
        "seats": {"economy": 52, "business": 15, "first": 6},
        "aircraft": "Boeing 777-200",
    },
]

FLIGHT_STATUS_BOARD = [
    {"flight": "SW101", "route": "NYC → LAX", "status": "On Time", "time": "10:30 AM", "gate": "A12", "terminal": "1"},
    {"flight": "SW102", "route": "LAX → CHI", "status": "Delayed", "time": "2:15 PM", "gate": "B8", "terminal": "2"},
    {"flight": "SW103", "route": "CHI → MIA", "status": "On Time", "time": "4:45 PM", "gate": "C5", "terminal": "1"},
    {"flight": "SW104", "route": "MIA → SEA", "status": "Cancelled", "time": "7:20 PM", "gate": "D3", "terminal": "2"},
    {"flight": "SW105", "route": "SEA → SFO", "status": "On Time", "time": "9:10 PM", "gate": "E7", "terminal": "3"},
]

ACTIVE_DATASET = {
    "flights": MOCK_FLIGHTS,
    "status_board": FLIGHT_STATUS_BOARD,
}
