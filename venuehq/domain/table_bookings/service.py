"""Table booking service - Availability, policy enforcement and the booking lifecycle"""

import logging
from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Optional, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...config import DEPOSIT_PER_PERSON, FRONTEND_URL, MANAGE_BOOKING_TOKEN_MAX_AGE
from ...models import User
from ...models_table_booking import BookingPolicy, BookingTimeSlot, TableBooking
from ...security_utils import generate_timed_token, verify_timed_token
from ...services import stripe_service
from ...shared.dates import combine, day_of_week, format_time_12h, now_local, time_to_minutes, today_local
from ...shared.money import calculate_growth, round2
from ..business_hours.hours import closing_minutes
from ..business_hours.service import get_effective_service_status, resolve_hours_for_date
from ..customers.service import CustomerService
from ..messages.service import send_customer_sms
from .availability import (
    ACTIVE_STATUSES,
    ExistingBooking,
    SlotCapacity,
    available_covers_at,
    closest_slot,
    compute_availability,
)
from .policies import (
    BOOKING_TYPES,
    DEFAULT_POLICIES,
    STAFF_OVERRIDABLE,
    SUNDAY_LUNCH,
    calculate_refund,
    policy_or_default,
    validate_booking_against_policy,
)
from .repository import TableBookingRepository
from .schemas import (
    BookingCreate,
    BookingPolicyBase,
    BookingUpdate,
    GuestBookingCreate,
    RecordPaymentRequest,
    TimeSlotConfigCreate,
)

logger = logging.getLogger(__name__)

MANAGE_TOKEN_SALT = "manage-booking"
NEXT_SLOT_SEARCH_DAYS = 56
MAX_RANGE_DAYS = 62


def seed_booking_policies(db: Session) -> None:
    for booking_type, values in DEFAULT_POLICIES.items():
        if not TableBookingRepository.get_policy(db, booking_type):
            db.add(BookingPolicy(booking_type=booking_type, **values))
    db.commit()


def generate_manage_token(booking: TableBooking) -> str:
    return generate_timed_token({"ref": booking.booking_reference}, salt=MANAGE_TOKEN_SALT)


def manage_url_for(booking: TableBooking) -> str:
    return f"{FRONTEND_URL}/bookings/manage?token={generate_manage_token(booking)}"


class TableBookingService:
    """Service layer for table bookings"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TableBookingRepository()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_policy(self, booking_type: str):
        return policy_or_default(self.repo.get_policy(self.db, booking_type), booking_type)

    def get_booking(self, booking_id: int) -> TableBooking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def list_bookings(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[str] = None,
        booking_type: Optional[str] = None,
    ) -> list[TableBooking]:
        return self.repo.list_bookings(self.db, start, end, status, booking_type)

    def _slot_configs(self) -> list[SlotCapacity]:
        return [
            SlotCapacity(
                day_of_week=row.day_of_week,
                slot_time=row.slot_time,
                max_covers=row.max_covers,
                booking_type=row.booking_type,
                is_active=row.is_active,
            )
            for row in self.repo.list_slot_configs(self.db)
        ]

    def _existing_bookings(self, booking_date: date, exclude_booking_id: Optional[int] = None):
        return [
            ExistingBooking(b.booking_time, b.party_size, b.duration_minutes)
            for b in self.repo.active_bookings_on(self.db, booking_date, exclude_booking_id)
        ]

    def _service_disabled_message(self, booking_type: str, booking_date: date) -> Optional[str]:
        codes = ["table_bookings"]
        if booking_type == SUNDAY_LUNCH:
            codes.append(SUNDAY_LUNCH)
        for code in codes:
            status = get_effective_service_status(self.db, code, booking_date)
            if not status["is_enabled"]:
                return status["message"] or "Table bookings are currently unavailable for this date"
        return None

    def _free_covers(
        self, booking_date: date, booking_time: str, booking_type: str, exclude_booking_id: Optional[int] = None
    ) -> int:
        return available_covers_at(
            booking_time,
            day_of_week(booking_date),
            booking_type,
            self._slot_configs(),
            self._existing_bookings(booking_date, exclude_booking_id),
        )

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def check_availability(
        self,
        booking_date: date,
        party_size: int,
        booking_type: str = "regular",
        exclude_booking_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        if booking_type not in BOOKING_TYPES:
            raise HTTPException(status_code=400, detail="Invalid booking type")
        if party_size < 1:
            raise HTTPException(status_code=400, detail="Party size must be at least 1")

        disabled = self._service_disabled_message(booking_type, booking_date)
        if disabled:
            return {"available": False, "time_slots": [], "kitchen_hours": None, "message": disabled}

        return compute_availability(
            booking_date,
            party_size,
            booking_type,
            resolve_hours_for_date(self.db, booking_date),
            self._slot_configs(),
            self._existing_bookings(booking_date, exclude_booking_id),
            now or now_local(),
        )

    def get_availability_range(
        self, start: date, end: date, party_size: int, booking_type: str = "regular"
    ) -> dict[str, bool]:
        if end < start:
            raise HTTPException(status_code=400, detail="End date cannot be before start date")
        if (end - start).days > MAX_RANGE_DAYS:
            raise HTTPException(status_code=400, detail=f"Date range cannot exceed {MAX_RANGE_DAYS} days")

        now = now_local()
        result = {}
        day = start
        while day <= end:
            result[day.isoformat()] = self.check_availability(day, party_size, booking_type, now=now)["available"]
            day += timedelta(days=1)
        return result

    def get_next_available_slot(
        self, party_size: int, booking_type: str = "regular", preferred_time: Optional[str] = None
    ) -> dict:
        """Scan forward from today; the first day with room wins"""
        now = now_local()
        today = now.date()
        policy = self.get_policy(booking_type)
        for offset in range(NEXT_SLOT_SEARCH_DAYS + 1):
            day = today + timedelta(days=offset)
            availability = self.check_availability(day, party_size, booking_type, now=now)
            slots = [
                s
                for s in availability["time_slots"]
                if not validate_booking_against_policy(policy, day, s["time"], party_size, booking_type, now)
            ]
            slot = closest_slot(slots, preferred_time)
            if slot:
                return {"booking_date": day, "time": slot["time"], "available_capacity": slot["available_capacity"]}
        return {"booking_date": None, "time": None, "available_capacity": None}

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _next_reference(self) -> str:
        year = today_local().year
        sequence = self.repo.count_references_for_year(self.db, year) + 1
        reference = f"TB-{year}-{sequence:04d}"
        while self.repo.get_by_reference(self.db, reference):
            sequence += 1
            reference = f"TB-{year}-{sequence:04d}"
        return reference

    def _check_kitchen_window(self, hours: dict, booking_time: str) -> Optional[str]:
        if hours.get("is_closed"):
            return "Restaurant closed on this date"
        if hours.get("is_kitchen_closed") or not hours.get("kitchen_opens") or not hours.get("kitchen_closes"):
            return "Kitchen closed on this date"
        minutes = time_to_minutes(booking_time)
        if minutes < time_to_minutes(hours["kitchen_opens"]) or minutes >= closing_minutes(hours["kitchen_closes"]):
            return (
                f"Kitchen is only open from {format_time_12h(hours['kitchen_opens'])} "
                f"to {format_time_12h(hours['kitchen_closes'])} on this day"
            )
        return None

    async def create_booking(
        self,
        data: Union[BookingCreate, GuestBookingCreate],
        user: Optional[User] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Create a booking for a guest (website) or on their behalf (staff).

        Staff bookings may override advance-notice, Sunday cutoff and kitchen
        hour rules; capacity is never overridable.

        Returns:
            Dict with the booking, any overridden warnings and the manage URL
        """
        now = now or now_local()
        source = getattr(data, "source", "website")
        is_staff = source != "website"
        override = is_staff and getattr(data, "override_policy", False)
        payment_method = getattr(data, "payment_method", None)

        if payment_method == "cash" and not is_staff:
            raise HTTPException(status_code=400, detail="Cash payment option is only available for staff bookings")

        if data.booking_type == SUNDAY_LUNCH and data.booking_date.weekday() != 6:
            raise HTTPException(status_code=400, detail="Sunday lunch is only available on Sundays")

        disabled = self._service_disabled_message(data.booking_type, data.booking_date)
        if disabled:
            raise HTTPException(status_code=400, detail=disabled)

        warnings = []
        violations = validate_booking_against_policy(
            self.get_policy(data.booking_type),
            data.booking_date,
            data.booking_time,
            data.party_size,
            data.booking_type,
            now,
        )
        blocking = []
        for violation in violations:
            if override and violation.code in STAFF_OVERRIDABLE:
                warnings.append(violation.message)
            else:
                blocking.append(violation.message)
        if blocking:
            raise HTTPException(status_code=400, detail="; ".join(blocking))

        hours = resolve_hours_for_date(self.db, data.booking_date)
        kitchen_error = self._check_kitchen_window(hours, data.booking_time)
        if kitchen_error:
            if override and not hours.get("is_closed"):
                warnings.append(kitchen_error)
            else:
                raise HTTPException(status_code=400, detail=kitchen_error)

        free = self._free_covers(data.booking_date, data.booking_time, data.booking_type)
        if free < data.party_size:
            raise HTTPException(
                status_code=409,
                detail=f"No availability for {data.party_size} people at {format_time_12h(data.booking_time)}",
            )

        customer = CustomerService(self.db).find_or_create_customer(
            data.first_name, data.last_name, data.mobile_number, data.email, data.sms_opt_in
        )

        status = "confirmed"
        deposit = 0.0
        payment_status = None
        paid_at = None
        if data.booking_type == SUNDAY_LUNCH:
            deposit = round2(data.party_size * DEPOSIT_PER_PERSON)
            if payment_method == "cash":
                payment_status = "paid"
                paid_at = datetime.utcnow()
            else:
                status = "pending_payment"
                payment_status = "pending"
                payment_method = "card"

        booking = self.repo.save(
            self.db,
            TableBooking(
                booking_reference=self._next_reference(),
                customer_id=customer.id,
                booking_date=data.booking_date,
                booking_time=data.booking_time,
                party_size=data.party_size,
                booking_type=data.booking_type,
                status=status,
                source=source,
                special_requirements=data.special_requirements,
                dietary_requirements=data.dietary_requirements,
                allergies=data.allergies,
                deposit_amount=deposit,
                payment_method=payment_method,
                payment_status=payment_status,
                paid_at=paid_at,
                created_by=user.id if user else None,
            ),
        )
        manage_url = manage_url_for(booking)

        if status == "pending_payment":
            await self._create_payment_link(booking, customer.email)
            if is_staff and booking.payment_link:
                await send_customer_sms(
                    self.db,
                    customer,
                    "booking_payment_request",
                    template_key="booking_payment_request",
                    context=self._sms_context(booking, payment_url=booking.payment_link),
                )
        else:
            await self._send_confirmation(booking)

        log_audit_event(
            self.db,
            user,
            "create",
            "table_booking",
            booking.id,
            {"reference": booking.booking_reference, "source": source, "overrides": warnings},
        )
        logger.info(f"✅ Booking {booking.booking_reference} created ({status}, party of {booking.party_size})")
        return {"booking": booking, "warnings": warnings, "manage_url": manage_url}

    def _sms_context(self, booking: TableBooking, **extra) -> dict:
        return {
            "party_size": booking.party_size,
            "booking_date": booking.booking_date.strftime("%a %d %b"),
            "booking_time": format_time_12h(booking.booking_time),
            "reference": booking.booking_reference,
            "deposit": f"{booking.deposit_amount:.2f}",
            **extra,
        }

    async def _create_payment_link(self, booking: TableBooking, email: Optional[str]) -> None:
        result = await stripe_service.create_checkout_session(
            amount=booking.deposit_amount,
            description=f"Sunday lunch deposit {booking.booking_reference}",
            success_url=f"{FRONTEND_URL}/bookings/payment-return?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=manage_url_for(booking),
            metadata={"booking_reference": booking.booking_reference, "type": "table_booking"},
            customer_email=email,
        )
        if result["success"]:
            booking.payment_link = result["url"]
            booking.stripe_session_id = result["session_id"]
            self.db.commit()
        else:
            logger.warning(f"⚠️ No payment link for {booking.booking_reference}: {result['message']}")

    async def _send_confirmation(self, booking: TableBooking) -> None:
        success, _ = await send_customer_sms(
            self.db,
            booking.customer,
            "booking_confirmation",
            template_key="booking_confirmation",
            context=self._sms_context(booking, manage_url=manage_url_for(booking)),
            dedupe_context={"reference": booking.booking_reference},
        )
        if success:
            booking.confirmation_sent_at = datetime.utcnow()
            self.db.commit()

    # ------------------------------------------------------------------
    # Modification
    # ------------------------------------------------------------------

    def check_modification_allowed(
        self, booking: TableBooking, changes: Optional[BookingUpdate] = None, now: Optional[datetime] = None
    ) -> dict:
        now = now or now_local()
        if booking.status not in ACTIVE_STATUSES:
            return {"allowed": False, "reason": "Only active bookings can be modified"}

        policy = self.get_policy(booking.booking_type)
        if not policy.modification_allowed:
            return {"allowed": False, "reason": "This booking type cannot be modified"}

        booking_at = combine(booking.booking_date, booking.booking_time)
        if (booking_at - now).total_seconds() / 3600 < policy.min_advance_hours:
            return {
                "allowed": False,
                "reason": f"Bookings cannot be modified less than {policy.min_advance_hours} hours in advance",
            }

        if changes is None:
            return {"allowed": True, "reason": None}

        new_date = changes.booking_date or booking.booking_date
        new_time = changes.booking_time or booking.booking_time
        new_party = changes.party_size or booking.party_size

        violations = validate_booking_against_policy(
            policy, new_date, new_time, new_party, booking.booking_type, now
        )
        if violations:
            return {"allowed": False, "reason": violations[0].message}

        if booking.booking_type == SUNDAY_LUNCH and new_date.weekday() != 6:
            return {"allowed": False, "reason": "Sunday lunch is only available on Sundays"}

        kitchen_error = self._check_kitchen_window(resolve_hours_for_date(self.db, new_date), new_time)
        if kitchen_error:
            return {"allowed": False, "reason": kitchen_error}

        if self._free_covers(new_date, new_time, booking.booking_type, exclude_booking_id=booking.id) < new_party:
            return {
                "allowed": False,
                "reason": f"No availability for {new_party} people at {format_time_12h(new_time)}",
            }
        return {"allowed": True, "reason": None}

    def update_booking(
        self, booking_id: int, data: BookingUpdate, user: Optional[User] = None, now: Optional[datetime] = None
    ) -> TableBooking:
        booking = self.get_booking(booking_id)
        check = self.check_modification_allowed(booking, data, now)
        if not check["allowed"]:
            raise HTTPException(status_code=400, detail=check["reason"])

        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        for key, value in updates.items():
            setattr(booking, key, value)
        if booking.booking_type == SUNDAY_LUNCH and booking.status == "pending_payment":
            booking.deposit_amount = round2(booking.party_size * DEPOSIT_PER_PERSON)

        booking = self.repo.save(self.db, booking)
        log_audit_event(self.db, user, "update", "table_booking", booking.id, {"fields": sorted(updates)})
        return booking

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def calculate_refund_amount(self, booking: TableBooking, now: Optional[datetime] = None) -> tuple[float, int, str]:
        if booking.payment_status != "paid" or not booking.deposit_amount:
            return 0.0, 0, "No payment to refund"
        return calculate_refund(
            self.get_policy(booking.booking_type),
            booking.booking_date,
            booking.booking_time,
            booking.deposit_amount,
            now or now_local(),
        )

    async def cancel_booking(
        self,
        booking_id: int,
        reason: Optional[str] = None,
        user: Optional[User] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        booking = self.get_booking(booking_id)
        if booking.status == "cancelled":
            raise HTTPException(status_code=400, detail="Booking is already cancelled")
        if booking.status not in ACTIVE_STATUSES:
            raise HTTPException(status_code=400, detail="Only active bookings can be cancelled")

        amount, percentage, refund_reason = self.calculate_refund_amount(booking, now)
        booking.status = "cancelled"
        booking.cancelled_at = datetime.utcnow()
        booking.cancellation_reason = reason
        booking.refund_amount = amount
        if amount > 0:
            booking.payment_status = "refunded"
        booking = self.repo.save(self.db, booking)

        refund_message = f"A refund of £{amount:.2f} will be processed." if amount > 0 else ""
        await send_customer_sms(
            self.db,
            booking.customer,
            "booking_cancellation",
            template_key="booking_cancellation",
            context=self._sms_context(booking, refund_message=refund_message),
        )
        log_audit_event(
            self.db, user, "cancel", "table_booking", booking.id, {"reason": reason, "refund_amount": amount}
        )
        logger.info(f"🗑️ Booking {booking.booking_reference} cancelled (refund £{amount:.2f})")
        return {
            "booking": booking,
            "refund_amount": amount,
            "refund_percentage": percentage,
            "refund_reason": refund_reason,
        }

    def _transition(self, booking_id: int, new_status: str, label: str, user: Optional[User]) -> TableBooking:
        booking = self.get_booking(booking_id)
        if booking.status != "confirmed":
            raise HTTPException(status_code=400, detail=f"Only confirmed bookings can be marked as {label}")
        booking.status = new_status
        if new_status == "no_show":
            booking.no_show_at = datetime.utcnow()
        else:
            booking.completed_at = datetime.utcnow()
        booking = self.repo.save(self.db, booking)
        log_audit_event(self.db, user, "update", "table_booking", booking.id, {"status": new_status})
        return booking

    def mark_no_show(self, booking_id: int, user: Optional[User] = None) -> TableBooking:
        return self._transition(booking_id, "no_show", "no-show", user)

    def mark_completed(self, booking_id: int, user: Optional[User] = None) -> TableBooking:
        return self._transition(booking_id, "completed", "completed", user)

    def delete_booking(self, booking_id: int, user: Optional[User] = None) -> None:
        booking = self.get_booking(booking_id)
        if booking.status not in ("pending_payment", "cancelled"):
            raise HTTPException(status_code=400, detail="Only pending or cancelled bookings can be deleted")
        reference = booking.booking_reference
        self.repo.delete(self.db, booking)
        log_audit_event(self.db, user, "delete", "table_booking", booking_id, {"reference": reference})

    async def record_payment(
        self, booking_id: int, data: RecordPaymentRequest, user: Optional[User] = None
    ) -> TableBooking:
        booking = self.get_booking(booking_id)
        if booking.status != "pending_payment":
            raise HTTPException(status_code=400, detail="Booking is not awaiting payment")

        booking.status = "confirmed"
        booking.payment_method = data.payment_method
        booking.payment_status = "paid"
        booking.paid_at = datetime.utcnow()
        if data.amount is not None:
            booking.deposit_amount = round2(data.amount)
        booking = self.repo.save(self.db, booking)

        await self._send_confirmation(booking)
        log_audit_event(
            self.db, user, "payment", "table_booking", booking.id, {"payment_method": data.payment_method}
        )
        logger.info(f"💳 Payment recorded for {booking.booking_reference}")
        return booking

    async def confirm_checkout_session(self, session_id: str) -> TableBooking:
        """Payment return: confirm the booking once Stripe reports the session paid"""
        booking = self.repo.get_by_stripe_session(self.db, session_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.status != "pending_payment":
            return booking

        session = await stripe_service.retrieve_checkout_session(session_id)
        if not session or session.get("payment_status") != "paid":
            raise HTTPException(status_code=400, detail="Payment has not been completed")
        return await self.record_payment(booking.id, RecordPaymentRequest(payment_method="card"))

    # ------------------------------------------------------------------
    # Guest manage links
    # ------------------------------------------------------------------

    def get_booking_by_token(self, token: str) -> TableBooking:
        payload = verify_timed_token(token, max_age=MANAGE_BOOKING_TOKEN_MAX_AGE, salt=MANAGE_TOKEN_SALT)
        if not payload or "ref" not in payload:
            raise HTTPException(status_code=400, detail="Invalid or expired booking link")
        booking = self.repo.get_by_reference(self.db, payload["ref"])
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    async def cancel_booking_by_token(self, token: str, reason: Optional[str] = None) -> dict:
        booking = self.get_booking_by_token(token)
        return await self.cancel_booking(booking.id, reason or "Cancelled by guest")

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def get_dashboard_stats(self, today: Optional[date] = None) -> dict:
        today = today or today_local()
        counted = ("confirmed", "pending_payment", "completed", "no_show")

        month_start = today.replace(day=1)
        month_end = today.replace(day=monthrange(today.year, today.month)[1])
        last_month_end = month_start - timedelta(days=1)
        last_month_start = last_month_end.replace(day=1)

        this_month = self.repo.count_between(self.db, month_start, month_end, counted)
        last_month = self.repo.count_between(self.db, last_month_start, last_month_end, counted)

        return {
            "today_bookings": self.repo.count_between(self.db, today, today, counted),
            "today_covers": self.repo.covers_on(self.db, today),
            "upcoming_bookings": self.repo.count_between(
                self.db, today + timedelta(days=1), today + timedelta(days=7), ACTIVE_STATUSES
            ),
            "pending_payments": self.repo.count_pending_payments(self.db),
            "this_month_bookings": this_month,
            "last_month_bookings": last_month,
            "growth_percentage": calculate_growth(this_month, last_month),
        }

    # ------------------------------------------------------------------
    # Policies and slot configuration
    # ------------------------------------------------------------------

    def list_policies(self):
        return [self.get_policy(booking_type) for booking_type in BOOKING_TYPES]

    def update_policy(self, booking_type: str, data: BookingPolicyBase, user: User) -> BookingPolicy:
        if booking_type not in BOOKING_TYPES:
            raise HTTPException(status_code=404, detail="Booking policy not found")
        policy = self.repo.get_policy(self.db, booking_type) or BookingPolicy(booking_type=booking_type)
        for key, value in data.model_dump().items():
            setattr(policy, key, value)
        policy = self.repo.save(self.db, policy)
        log_audit_event(self.db, user, "update", "booking_policy", booking_type, data.model_dump())
        return policy

    def list_slot_configs(self, day: Optional[int] = None) -> list[BookingTimeSlot]:
        return self.repo.list_slot_configs(self.db, day)

    def _duplicate_slot(self, data: TimeSlotConfigCreate, exclude_id: Optional[int] = None) -> bool:
        return any(
            row.id != exclude_id and row.slot_time == data.slot_time and row.booking_type == data.booking_type
            for row in self.repo.list_slot_configs(self.db, data.day_of_week)
        )

    def create_slot_config(self, data: TimeSlotConfigCreate, user: User) -> BookingTimeSlot:
        if self._duplicate_slot(data):
            raise HTTPException(
                status_code=409, detail="A slot configuration already exists for this day, time and type"
            )
        row = self.repo.save(self.db, BookingTimeSlot(**data.model_dump()))
        log_audit_event(self.db, user, "create", "booking_time_slot", row.id)
        return row

    def update_slot_config(self, slot_id: int, data: TimeSlotConfigCreate, user: User) -> BookingTimeSlot:
        row = self.repo.get_slot_config(self.db, slot_id)
        if not row:
            raise HTTPException(status_code=404, detail="Time slot configuration not found")
        if self._duplicate_slot(data, exclude_id=slot_id):
            raise HTTPException(
                status_code=409, detail="A slot configuration already exists for this day, time and type"
            )
        for key, value in data.model_dump().items():
            setattr(row, key, value)
        row = self.repo.save(self.db, row)
        log_audit_event(self.db, user, "update", "booking_time_slot", row.id)
        return row

    def delete_slot_config(self, slot_id: int, user: User) -> None:
        row = self.repo.get_slot_config(self.db, slot_id)
        if not row:
            raise HTTPException(status_code=404, detail="Time slot configuration not found")
        self.repo.delete(self.db, row)
        log_audit_event(self.db, user, "delete", "booking_time_slot", slot_id)
