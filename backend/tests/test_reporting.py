import uuid

import pytest
from sqlalchemy import select

from boxtracker.core.exceptions import InvalidArgument, NotFound, PermissionDenied
from boxtracker.models.box import Box
from boxtracker.models.report import Report, ReportStatus, ReportType
from boxtracker.models.volunteer import AuthorizedVolunteer
from boxtracker.schemas.report import SubmitReportRequest
from boxtracker.services.notifier import ReportNotifier, render_report_email
from boxtracker.services.reporting import ReportService, resolve_report_type


@pytest.fixture
def service(gate, notifier, audit):
    return ReportService(gate, notifier, audit)


@pytest.fixture
async def known_box(session):
    box = Box(
        box_id="BOX42",
        label="Hardware Store",
        address="1 Main St",
        city="Atlanta",
        state="GA",
        volunteer="Alice Volunteer",
        provisioned_by="uid-alice",
    )
    session.add(box)
    await session.commit()
    return box


def pickup(**overrides):
    data = {
        "boxId": "BOX42",
        "formType": "pickup-details-form",
        "notes": "Box is full",
        "contactName": "Pat",
        "contactEmail": "pat@example.org",
    }
    data.update(overrides)
    return SubmitReportRequest.model_validate(data)


@pytest.mark.parametrize("form_type, expected", [
    ("pickup-details-form", ReportType.PICKUP_DETAILS),
    ("pickup-alert-form", ReportType.PICKUP_ALERT),
    ("problem-report-form", ReportType.PROBLEM_REPORT),
    ("problem_alert", ReportType.PROBLEM_ALERT),
])
def test_resolve_report_type(form_type, expected):
    assert resolve_report_type(form_type) == expected


@pytest.mark.parametrize("form_type", [None, "", "box_registered", "contact-form"])
def test_resolve_report_type_rejects(form_type):
    with pytest.raises(InvalidArgument):
        resolve_report_type(form_type)


async def test_report_persisted_and_emailed(session, service, known_box, providers):
    response = await service.submit(session, pickup())

    assert response.success is True
    assert response.notification.sent is True
    assert response.notification.message_id == "<20261018.1@mg.example.org>"

    report = await session.get(Report, response.record_id)
    assert ReportType(report.report_type) == ReportType.PICKUP_DETAILS
    assert ReportStatus(report.status) == ReportStatus.NEW
    assert report.label == "Hardware Store"
    assert report.volunteer == "Alice Volunteer"
    assert report.reporter_email == "pat@example.org"

    (mail,) = providers.sent_to("mail.test")
    assert mail.url.path == "/v3/mg.example.org/messages"
    assert b"PICKUP+REQUEST" in mail.content


async def test_report_survives_email_failure(session, service, known_box, providers):
    providers.mail_http_status = 500

    response = await service.submit(session, pickup(formType="problem-report-form"))

    assert response.success is True
    assert response.notification.sent is False
    assert response.notification.error == "Failed to send notification email."
    assert await session.get(Report, response.record_id) is not None


async def test_report_without_mail_config(session, gate, audit, http_client):
    service = ReportService(gate, ReportNotifier(http_client, "", "", "x@example.org"), audit)

    response = await service.submit(session, pickup())
    assert response.notification.sent is False
    assert response.notification.error == "Email delivery is not configured."


async def test_report_for_unknown_box_is_kept(session, service):
    response = await service.submit(session, pickup(boxId="GHOST"))

    report = await session.get(Report, response.record_id)
    assert report.box_id == "GHOST"
    assert report.label is None


async def test_report_requires_box_id(session, service):
    with pytest.raises(InvalidArgument):
        await service.submit(session, pickup(boxId=" "))
    assert (await session.execute(select(Report))).scalars().all() == []


async def test_box_history_is_oldest_first(session, service, known_box):
    first = await service.submit(session, pickup())
    second = await service.submit(session, pickup(formType="problem-alert-form"))
    await service.submit(session, pickup(boxId="OTHER"))

    history = await service.box_history(session, "BOX42")
    assert [r.id for r in history] == [first.record_id, second.record_id]


async def test_clear_report(session, service, known_box, alice):
    submitted = await service.submit(session, pickup())

    with pytest.raises(PermissionDenied):
        await service.clear_report(session, alice, submitted.record_id)

    session.add(AuthorizedVolunteer(uid=alice.uid))
    await session.commit()

    report = await service.clear_report(session, alice, submitted.record_id)
    assert ReportStatus(report.status) == ReportStatus.CLEARED
    assert report.cleared_by == alice.uid
    cleared_at = report.cleared_at

    again = await service.clear_report(session, alice, submitted.record_id)
    assert again.cleared_at == cleared_at

    with pytest.raises(NotFound):
        await service.clear_report(session, alice, uuid.uuid4())


def test_email_subjects():
    report = Report(
        id=uuid.uuid4(),
        box_id="BOX42",
        report_type=ReportType.PROBLEM_ALERT,
        label="Hardware Store",
        address="1 Main St",
        city="Atlanta",
    )
    subject, body = render_report_email(report)
    assert subject == "Toys for Tots PROBLEM REPORT: Hardware Store"
    assert "Address: 1 Main St, Atlanta" in body
    assert "Assigned Volunteer: N/A" in body

    report.report_type = ReportType.PICKUP_ALERT
    report.label = None
    subject, _ = render_report_email(report)
    assert subject == "Toys for Tots PICKUP REQUEST: BOX42"

    report.report_type = ReportType.BOX_REGISTERED
    subject, _ = render_report_email(report)
    assert subject == "New Toys for Tots Report"
