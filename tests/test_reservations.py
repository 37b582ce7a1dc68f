def room_booking(user_id: int, room_id: int, **overrides) -> dict:
    payload = {
        "user_id": user_id,
        "room_id": room_id,
        "department_name": "Finance",
        "booking_date": "2025-03-10",
        "start_time": "09:00",
        "hours": 2,
    }
    payload.update(overrides)
    return payload


def test_reserve_room_flow(bookings_client, user_id, room_id):
    response = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id))
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Room reserved successfully"
    assert body["start_time"] == "09:00:00"
    assert body["status"] == "Pending"
    assert isinstance(body["booking_id"], int)

    listing = bookings_client.get("/reservations_room")
    assert listing.status_code == 200
    [entry] = listing.json()
    assert entry["booking_id"] == body["booking_id"]
    assert entry["room_name"] == "Board Room"
    assert entry["full_name"] == "Regular User"
    assert entry["department_name"] == "Finance"
    assert entry["booking_date"] == "2025-03-10"
    assert entry["start_time"] == "09:00"
    assert entry["end_time"] == "11:00"
    assert entry["status"] == "Pending"


def test_overlap_is_rejected_and_boundary_touch_is_not(bookings_client, user_id, room_id):
    assert bookings_client.post("/reserve_room", json=room_booking(user_id, room_id)).status_code == 201

    overlap = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, start_time="10:00"))
    assert overlap.status_code == 409
    assert overlap.json() == {"error": "Room already booked for this time slot"}

    back_to_back = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, start_time="11:00:00"))
    assert back_to_back.status_code == 201

    other_day = bookings_client.post(
        "/reserve_room", json=room_booking(user_id, room_id, booking_date="2025-03-11", start_time="10:00")
    )
    assert other_day.status_code == 201
    assert len(bookings_client.get("/reservations_room").json()) == 3


def test_reservation_validation_errors(bookings_client, user_id, room_id):
    missing = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, department_name=""))
    assert missing.status_code == 400
    assert missing.json() == {"error": "Missing required fields: department_name"}

    for hours in (0, 9, 2.5, "abc", -1):
        response = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, hours=hours))
        assert response.status_code == 400, hours
        assert response.json() == {"error": "hours must be a whole number between 1 and 8"}

    bad_date = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, booking_date="10/03/2025"))
    assert bad_date.status_code == 400
    bad_time = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, start_time="9am"))
    assert bad_time.status_code == 400

    assert bookings_client.get("/reservations_room").json() == []


def test_reservation_unknown_user_or_room(bookings_client, user_id, room_id):
    no_user = bookings_client.post("/reserve_room", json=room_booking(user_id + 100, room_id))
    assert no_user.status_code == 404
    assert no_user.json() == {"error": "User not found"}

    no_room = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id + 100))
    assert no_room.status_code == 404
    assert no_room.json() == {"error": "Room not found"}
    assert bookings_client.get("/reservations_room").json() == []


def test_oversized_ids_return_json_not_found(bookings_client, admin_headers, user_id, room_id):
    no_user = bookings_client.post("/reserve_room", json=room_booking(10**30, room_id))
    assert no_user.status_code == 404
    assert no_user.json() == {"error": "User not found"}

    no_booking = bookings_client.patch(
        "/update_room_status", json={"booking_id": 10**30, "status": "Approved"}, headers=admin_headers
    )
    assert no_booking.status_code == 404
    assert no_booking.json() == {"error": "Booking not found"}


def test_overlong_department_name_is_rejected(bookings_client, user_id, room_id):
    response = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, department_name="d" * 101))
    assert response.status_code == 400
    assert response.json() == {"error": "department_name must be at most 100 characters"}
    assert bookings_client.get("/reservations_room").json() == []


def test_end_time_is_not_wrapped_past_midnight(bookings_client, user_id, room_id):
    response = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, start_time="22:00", hours=4))
    assert response.status_code == 201
    [entry] = bookings_client.get("/reservations_room").json()
    assert entry["end_time"] == "26:00"


def test_reserve_vehicle_requires_destination(bookings_client, user_id, vehicle_id):
    payload = {
        "user_id": user_id,
        "vehicle_id": vehicle_id,
        "department_name": "Relief",
        "booking_date": "2025-03-10",
        "start_time": "08:30",
        "hours": 3,
    }
    missing = bookings_client.post("/reserve_vehicle", json=payload)
    assert missing.status_code == 400
    assert missing.json() == {"error": "Missing required fields: destination"}

    created = bookings_client.post("/reserve_vehicle", json={**payload, "destination": "Head Office"})
    assert created.status_code == 201
    assert created.json()["start_time"] == "08:30:00"
    assert created.json()["message"] == "Vehicle reserved successfully"

    [entry] = bookings_client.get("/reservations_vehicle").json()
    assert entry["vehicle_name"] == "Hiace"
    assert entry["destination"] == "Head Office"
    assert entry["end_time"] == "11:30"
    assert bookings_client.get("/reservations_room").json() == []


def test_room_and_vehicle_with_same_id_do_not_conflict(bookings_client, user_id, room_id, vehicle_id):
    assert room_id == vehicle_id == 1
    assert bookings_client.post("/reserve_room", json=room_booking(user_id, room_id)).status_code == 201
    vehicle_resp = bookings_client.post(
        "/reserve_vehicle",
        json={
            "user_id": user_id,
            "vehicle_id": vehicle_id,
            "department_name": "Finance",
            "booking_date": "2025-03-10",
            "start_time": "09:00",
            "hours": 2,
            "destination": "Airport",
        },
    )
    assert vehicle_resp.status_code == 201


def test_status_updates(bookings_client, admin_headers, user_id, room_id):
    booking_id = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id)).json()["booking_id"]

    approved = bookings_client.patch(
        "/update_room_status", json={"booking_id": booking_id, "status": "Approved"}, headers=admin_headers
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "Approved"

    invalid = bookings_client.patch(
        "/update_room_status", json={"booking_id": booking_id, "status": "Done"}, headers=admin_headers
    )
    assert invalid.status_code == 400
    assert bookings_client.get("/reservations_room").json()[0]["status"] == "Approved"

    missing_id = bookings_client.patch("/update_room_status", json={"status": "Cancelled"}, headers=admin_headers)
    assert missing_id.status_code == 400
    assert missing_id.json() == {"error": "booking_id is required"}

    unknown = bookings_client.patch(
        "/update_room_status", json={"booking_id": 999, "status": "Cancelled"}, headers=admin_headers
    )
    assert unknown.status_code == 404

    wrong_kind = bookings_client.patch(
        "/update_vehicle_status", json={"booking_id": booking_id, "status": "Cancelled"}, headers=admin_headers
    )
    assert wrong_kind.status_code == 404


def test_status_update_requires_admin(bookings_client, user_headers, user_id, room_id):
    booking_id = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id)).json()["booking_id"]
    response = bookings_client.patch(
        "/update_room_status", json={"booking_id": booking_id, "status": "Approved"}, headers=user_headers
    )
    assert response.status_code == 403
    assert bookings_client.get("/reservations_room").json()[0]["status"] == "Pending"


def test_cancelled_booking_frees_slot_until_reactivated(bookings_client, admin_headers, user_id, room_id):
    first = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id)).json()["booking_id"]
    cancel = bookings_client.patch(
        "/update_room_status", json={"booking_id": first, "status": "Cancelled"}, headers=admin_headers
    )
    assert cancel.status_code == 200

    second = bookings_client.post("/reserve_room", json=room_booking(user_id, room_id, start_time="10:00"))
    assert second.status_code == 201

    reactivate = bookings_client.patch(
        "/update_room_status", json={"booking_id": first, "status": "Pending"}, headers=admin_headers
    )
    assert reactivate.status_code == 409
    statuses = {entry["booking_id"]: entry["status"] for entry in bookings_client.get("/reservations_room").json()}
    assert statuses[first] == "Cancelled"
