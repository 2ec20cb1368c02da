from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class FormModel(Base):
    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    title = Column(String)
    description = Column(Text)
    status = Column(String)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class FieldModel(Base):
    __tablename__ = "fields"

    id = Column(String, primary_key=True)
    form_id = Column(String, index=True)
    label_json = Column(Text)
    type = Column(String)
    field_order = Column(Integer)
    required = Column(Integer, default=0)
    options_json = Column(Text)
    placeholder_json = Column(Text, nullable=True)
    help_text_json = Column(Text, nullable=True)
    created_at = Column(DateTime)


class ResponseModel(Base):
    __tablename__ = "responses"

    id = Column(String, primary_key=True)
    form_id = Column(String, index=True)
    respondent_json = Column(Text, nullable=True)
    answers_json = Column(Text)
    submitted_at = Column(DateTime)
