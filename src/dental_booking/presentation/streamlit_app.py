"""Streamlit presentation layer that consumes the booking service."""

from datetime import date, datetime, time, timedelta

import pandas as pd
import plotly.express as px
import streamlit as st

from dental_booking import db
from dental_booking.config import load_settings
from dental_booking.exceptions import (
    AuthorizationError,
    BookingNotFoundError,
    BookingSystemError,
    DatabaseConnectionError,
    ResourceNotFoundError,
    StateConflictError,
    ValidationError,
)
from dental_booking.identity import Caller
from dental_booking.logger import configure_logging, get_logger
from dental_booking.services import BookingService

logger = get_logger(__name__)


@st.cache_resource
def bootstrap() -> None:
    """Configure logging and the database once per Streamlit process."""
    settings = load_settings()
    configure_logging(settings)
    db.init_db(db.configure(settings.database_url))


def show_rejection(exc: BookingSystemError) -> None:
    if isinstance(exc, (ValidationError, ResourceNotFoundError)):
        st.warning(str(exc))
    elif isinstance(exc, StateConflictError):
        st.error(f"Not possible: {exc}")
    elif isinstance(exc, AuthorizationError):
        st.error(f"Not allowed: {exc}")
    else:
        st.error(str(exc))


def pick_datetime(label: str, key: str, default: datetime | None = None) -> datetime:
    default = default or datetime.combine(date.today() + timedelta(days=2), time(9, 0))
    col_date, col_time = st.columns(2)
    chosen_date = col_date.date_input(f"{label} date", value=default.date(), key=f"{key}_date")
    chosen_time = col_time.time_input(
        f"{label} time", value=default.time(), step=timedelta(minutes=15), key=f"{key}_time"
    )
    return datetime.combine(chosen_date, chosen_time)


def render_identity() -> Caller:
    st.sidebar.header("Signed in as")
    user_id = st.sidebar.text_input("User id", value="john@example.com")
    is_admin = st.sidebar.checkbox("Administrator", value=False)
    return Caller(user_id=user_id.strip() or "anonymous", is_admin=is_admin)


def render_dashboard(service: BookingService, caller: Caller) -> None:
    st.subheader("Overview")
    providers = service.list_providers()
    col1, col2 = st.columns(2)
    col1.metric("Providers", len(providers))

    if not caller.is_admin:
        col2.metric("Your waitlist entries", len(service.list_own_waitlist(caller)))
        return

    bookings = service.list_bookings(caller)
    col2.metric("Booked appointments", len(bookings))
    if not bookings:
        st.info("No bookings yet.")
        return

    df = pd.DataFrame([{"provider": b.provider.name, "start": b.appointment_date} for b in bookings])
    per_provider = df.groupby("provider").size().reset_index(name="bookings")
    fig = px.bar(
        per_provider,
        x="provider",
        y="bookings",
        text="bookings",
        color_discrete_sequence=["#2a7de1"],
    )
    fig.update_traces(width=0.35, textposition="outside")
    fig.update_layout(
        xaxis_title="Provider",
        yaxis_title="Bookings",
        yaxis=dict(tick0=0, dtick=1, rangemode="tozero", showgrid=False),
        plot_bgcolor="white",
        margin=dict(t=40, b=40, l=10, r=10),
        bargap=0.5,
    )
    st.plotly_chart(fig, use_container_width=True)


def render_my_booking(service: BookingService, caller: Caller) -> None:
    st.subheader("My appointment")
    providers = service.list_providers()
    if not providers:
        st.info("No providers available yet.")
        return
    provider_options = {
        f"{p.name} - {p.area_of_expertise} ({p.years_of_experience}y)": p.id for p in providers
    }

    try:
        booking = service.get_own_booking(caller)
    except BookingNotFoundError:
        booking = None

    if booking is None:
        with st.form("create_booking"):
            provider_label = st.selectbox("Provider", list(provider_options.keys()))
            appointment = pick_datetime("Appointment", "create")
            if st.form_submit_button("Book"):
                try:
                    created = service.create_booking(
                        caller, provider_options[provider_label], appointment
                    )
                    st.success(f"Booked #{created.id} with {created.provider.name}")
                except BookingSystemError as exc:
                    show_rejection(exc)
        return

    st.write(
        f"#{booking.id} | {booking.provider.name} | "
        f"{booking.appointment_date:%Y-%m-%d %H:%M} - {booking.end:%H:%M}"
    )
    with st.form("update_booking"):
        labels = list(provider_options.keys())
        current = next(
            (i for i, label in enumerate(labels) if provider_options[label] == booking.provider_id), 0
        )
        provider_label = st.selectbox("Provider", labels, index=current)
        appointment = pick_datetime("New appointment", "update", booking.appointment_date)
        if st.form_submit_button("Save changes"):
            try:
                service.update_own_booking(caller, provider_options[provider_label], appointment)
                st.rerun()
            except BookingSystemError as exc:
                show_rejection(exc)

    if st.button("Cancel appointment", key="cancel_booking"):
        try:
            service.cancel_own_booking(caller)
            st.rerun()
        except BookingSystemError as exc:
            show_rejection(exc)


def render_waitlist(service: BookingService, caller: Caller) -> None:
    st.subheader("Waitlist")
    providers = service.list_providers()
    if providers:
        provider_options = {p.name: p.id for p in providers}
        with st.form("join_waitlist"):
            provider_label = st.selectbox("Provider", list(provider_options.keys()))
            preferred = pick_datetime("Preferred", "waitlist")
            if st.form_submit_button("Join waitlist"):
                try:
                    service.join_waitlist(caller, provider_options[provider_label], preferred)
                    st.success("Added to waitlist")
                except BookingSystemError as exc:
                    show_rejection(exc)

    for entry in service.list_own_waitlist(caller):
        col_info, col_action = st.columns([5, 1])
        col_info.write(
            f"#{entry.id} | {entry.provider.name} | preferred {entry.preferred_date:%Y-%m-%d %H:%M}"
        )
        if col_action.button("Leave", key=f"leave_{entry.id}"):
            try:
                service.leave_waitlist(caller, entry.id)
                st.rerun()
            except BookingSystemError as exc:
                show_rejection(exc)


def render_admin(service: BookingService, caller: Caller) -> None:
    st.subheader("Administration")

    with st.expander("Add provider"):
        with st.form("create_provider"):
            name = st.text_input("Name")
            years = st.number_input("Years of experience", min_value=0, step=1)
            expertise = st.text_input("Area of expertise")
            if st.form_submit_button("Create provider"):
                try:
                    service.create_provider(caller, name, int(years), expertise)
                    st.success("Provider created")
                except BookingSystemError as exc:
                    show_rejection(exc)

    st.markdown("#### All bookings")
    for booking in service.list_bookings(caller):
        col_info, col_delete = st.columns([5, 1])
        col_info.write(
            f"#{booking.id} | user {booking.user_id} | {booking.provider.name} | "
            f"{booking.appointment_date:%Y-%m-%d %H:%M}"
        )
        if col_delete.button("Delete", key=f"admin_delete_{booking.id}"):
            try:
                service.admin_delete_booking(caller, booking.id)
                st.rerun()
            except BookingSystemError as exc:
                show_rejection(exc)

    bookings = service.list_bookings(caller)
    if bookings:
        with st.form("admin_update_booking"):
            booking_ids = [b.id for b in bookings]
            booking_id = st.selectbox("Booking", booking_ids)
            provider_options = {"(unchanged)": None}
            provider_options.update({p.name: p.id for p in service.list_providers()})
            provider_label = st.selectbox("Provider", list(provider_options.keys()))
            move = st.checkbox("Move to a new time")
            appointment = pick_datetime("New appointment", "admin")
            new_user = st.text_input("Reassign to user id (optional)")
            if st.form_submit_button("Update booking"):
                try:
                    service.admin_update_booking(
                        caller,
                        booking_id,
                        provider_id=provider_options[provider_label],
                        appointment_date=appointment if move else None,
                        user_id=new_user.strip() or None,
                    )
                    st.rerun()
                except BookingSystemError as exc:
                    show_rejection(exc)

    st.markdown("#### Waitlist (oldest first)")
    entries = service.list_waitlist(caller)
    if entries:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "id": e.id,
                        "user": e.user_id,
                        "provider": e.provider.name,
                        "preferred": e.preferred_date,
                        "joined": e.created_at,
                    }
                    for e in entries
                ]
            ),
            hide_index=True,
        )
    else:
        st.info("Nobody is waiting.")


def main() -> None:
    st.set_page_config(page_title="Dental Booking", page_icon="🦷", layout="wide")
    st.title("Dental Booking")

    try:
        bootstrap()
        caller = render_identity()
        with db.session_scope() as session:
            service = BookingService(session)
            render_dashboard(service, caller)
            st.divider()
            render_my_booking(service, caller)
            st.divider()
            render_waitlist(service, caller)
            if caller.is_admin:
                st.divider()
                render_admin(service, caller)
    except DatabaseConnectionError as exc:
        logger.exception("Database unavailable")
        st.error(f"Database connection failed: {exc}")


if __name__ == "__main__":
    main()
