"""CLI commands, run through Flask's CliRunner against the test database."""

from erp.models import SalesOrder


def test_init_db(cli_runner, db_session):
    result = cli_runner.invoke(args=["system", "init-db"])

    assert result.exit_code == 0
    assert "Database tables ready" in result.output


def test_list_shows_allowed_operations(cli_runner, make_document):
    draft = make_document("invoice", amount_cents=123_456)
    posted = make_document("invoice", status="posted")

    result = cli_runner.invoke(args=["documents", "list", "--type", "invoice"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    draft_line = next(line for line in lines if line.startswith(f"{draft.id} "))
    posted_line = next(line for line in lines if line.startswith(f"{posted.id} "))
    assert "1,234.56" in draft_line
    assert draft_line.endswith("update, delete, post")
    assert posted_line.endswith("read only")


def test_list_empty(cli_runner, db_session):
    result = cli_runner.invoke(args=["documents", "list", "--type", "budget", "--status", "posted"])

    assert result.exit_code == 0
    assert "No budget documents found." in result.output


def test_check_posted(cli_runner, make_document):
    doc = make_document("invoice", status="posted")

    result = cli_runner.invoke(args=["documents", "check", "--type", "invoice", "--id", str(doc.id)])

    assert result.exit_code == 0
    assert "FAIL [403] Posted records cannot be modified" in result.output


def test_check_draft_delete(cli_runner, make_document):
    doc = make_document("purchase_bill")

    result = cli_runner.invoke(
        args=["documents", "check", "--type", "purchase_bill", "--id", str(doc.id), "--operation", "delete"]
    )

    assert "PASS Purchase bill can be deleted" in result.output


def test_check_bulk(cli_runner, make_document):
    draft = make_document("invoice")
    posted = make_document("invoice", status="posted")

    result = cli_runner.invoke(
        args=["documents", "check-bulk", "--type", "invoice", str(draft.id), str(posted.id), "999"]
    )

    assert result.exit_code == 0
    assert f"PASS {draft.id}: Invoice can be updated" in result.output
    assert f"FAIL {posted.id}: [403] Posted records cannot be modified" in result.output
    assert "FAIL 999: [404] Invoice not found" in result.output
    assert "Total: 3  Allowed: 1  Blocked: 2" in result.output


def test_post(cli_runner, db_session, make_document):
    doc = make_document("sales_order")
    doc_id = doc.id

    result = cli_runner.invoke(args=["documents", "post", "--type", "sales_order", "--id", str(doc_id)])

    assert result.exit_code == 0
    assert f"PASS Posted sales order {doc_id}" in result.output
    db_session.expire_all()
    stored = db_session.get(SalesOrder, doc_id)
    assert stored.status == "posted"
    assert stored.posted_by == "cli"


def test_post_already_posted_fails(cli_runner, make_document):
    doc = make_document("sales_order", status="posted")

    result = cli_runner.invoke(args=["documents", "post", "--type", "sales_order", "--id", str(doc.id)])

    assert result.exit_code != 0
    assert "must be 'draft'" in result.output
