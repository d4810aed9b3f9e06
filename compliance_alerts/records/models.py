"""
Monitored Record Models

Minimal mappings of the business tables the alert engine scans. Only the
columns needed for scanning and message rendering are mapped; the schemas
themselves are owned and migrated by the CRUD modules.
"""

from sqlalchemy import Column, Integer, String, Float, Date, ForeignKey

from compliance_alerts.database import Base


class Firm(Base):
    __tablename__ = "firms"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    status = Column(String, default="active")  # active, inactive, suspended


class License(Base):
    __tablename__ = "licenses"

    id = Column(Integer, primary_key=True)
    firm_id = Column(Integer, ForeignKey("firms.id"), nullable=False)
    license_type = Column(String, nullable=False)  # trade_license, tin, vat, irc, fire, environmental
    license_number = Column(String, nullable=True)
    expiry_date = Column(Date, nullable=True)
    status = Column(String, default="active")  # active, expired, under_renewal, cancelled


class Enlistment(Base):
    __tablename__ = "enlistments"

    id = Column(Integer, primary_key=True)
    firm_id = Column(Integer, ForeignKey("firms.id"), nullable=False)
    authority = Column(String, nullable=False)  # RAJUK, PWD, LGED, RHD, ...
    category = Column(String, nullable=True)
    expiry_date = Column(Date, nullable=True)
    status = Column(String, default="active")


class BankGuarantee(Base):
    __tablename__ = "bank_guarantees"

    id = Column(Integer, primary_key=True)
    firm_id = Column(Integer, ForeignKey("firms.id"), nullable=False)
    bg_type = Column(String, nullable=False)  # tender_security, performance, advance_payment, retention
    bank_name = Column(String, nullable=False)
    bg_number = Column(String, nullable=True)
    amount = Column(Float, nullable=False)
    expiry_date = Column(Date, nullable=True)
    status = Column(String, default="active")  # active, expired, claimed, released, extended


class TaxCompliance(Base):
    __tablename__ = "tax_compliance"

    id = Column(Integer, primary_key=True)
    firm_id = Column(Integer, ForeignKey("firms.id"), nullable=False)
    compliance_type = Column(String, nullable=False)  # monthly_vat, yearly_return, advance_tax, tds, wht
    fiscal_year = Column(String, nullable=True)
    month = Column(String, nullable=True)
    due_date = Column(Date, nullable=True)
    status = Column(String, default="pending")  # pending, submitted, paid, overdue


class Tender(Base):
    __tablename__ = "tenders"

    id = Column(Integer, primary_key=True)
    tender_id = Column(String, nullable=False)  # Reference number published by the procuring entity
    procuring_entity = Column(String, nullable=True)
    assigned_firm_id = Column(Integer, ForeignKey("firms.id"), nullable=True)
    last_submission = Column("lastSubmission", Date, nullable=True)
    status = Column(String, default="discovered")
    # discovered, evaluated, preparing, submitted, opened, won, lost, cancelled


class Loan(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True)
    firm_id = Column(Integer, ForeignKey("firms.id"), nullable=False)
    bank_name = Column(String, nullable=False)
    loan_type = Column(String, nullable=True)  # working_capital, term_loan, overdraft, credit_limit
    loan_number = Column(String, nullable=True)
    outstanding_amount = Column(Float, nullable=True)
    maturity_date = Column(Date, nullable=True)
    status = Column(String, default="active")  # active, closed, overdue


class LoanPayment(Base):
    __tablename__ = "loan_payments"

    id = Column(Integer, primary_key=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False)
    due_date = Column(Date, nullable=True)
    total_amount = Column(Float, nullable=True)
    status = Column(String, default="pending")  # pending, paid, overdue
