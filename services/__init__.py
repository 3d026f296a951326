"""Services package.

Modules:
    numbering           lottery number <-> diary mapping (pure)
    allotment_lifecycle allotment creation and status transitions
    sale_validator      checks a sale before it is written
    autofill            suggests diary and issuer for a lottery number
    filters             search criteria, predicates and quick search
    aggregation         dashboard and issuer reports
    issuers             issuer management
    ticket_sales        sale write path
    audit_service       audit log

Submodules are imported directly; the database layer depends on
``services.numbering``, so this package does not import them eagerly.
"""
