import logging

from wanderplan.core.logging import EventFormatter


def test_event_formatter_appends_extra_fields():
    formatter = EventFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord(
        "wanderplan", logging.INFO, __file__, 1, "plan.deleted", None, None
    )
    record.plan_id = "abc"
    record.user_id = "u1"

    assert formatter.format(record) == "INFO plan.deleted | plan_id=abc user_id=u1"


def test_event_formatter_leaves_plain_records_alone():
    formatter = EventFormatter("%(message)s")
    record = logging.LogRecord(
        "wanderplan", logging.INFO, __file__, 1, "app.startup", None, None
    )

    assert formatter.format(record) == "app.startup"
