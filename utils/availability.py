from datetime import timedelta

from sqlalchemy import and_, or_

from models.booking import ACTIVE_STATUSES, Booking


def occupied_until(check_in, check_out):
    """A same-day visit still occupies its day."""
    if check_out > check_in:
        return check_out
    return check_in + timedelta(days=1)


def conflicting_bookings(check_in, check_out, package_id=None, room_type=None, exclude_id=None):
    """
    Pending/confirmed bookings of the same package (or room type when no
    package is given) whose [check_in, check_out) range overlaps the one asked for.
    """
    q = Booking.query.filter(Booking.status.in_(ACTIVE_STATUSES))
    if package_id is not None:
        q = q.filter(Booking.package_id == package_id)
    else:
        q = q.filter(Booking.package_id.is_(None), Booking.room_type == room_type)

    if exclude_id is not None:
        q = q.filter(Booking.id != exclude_id)

    end = occupied_until(check_in, check_out)
    # checkout day is free for the next guest; a same-day booking
    # (check_out == check_in) still holds its one day
    return q.filter(
        Booking.check_in < end,
        or_(
            Booking.check_out > check_in,
            and_(Booking.check_out == Booking.check_in, Booking.check_in >= check_in),
        ),
    )


def has_conflict(check_in, check_out, package_id=None, room_type=None, exclude_id=None) -> bool:
    q = conflicting_bookings(check_in, check_out, package_id=package_id, room_type=room_type, exclude_id=exclude_id)
    return q.first() is not None
