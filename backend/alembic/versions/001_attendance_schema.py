"""Attendance, schedule and employee tables

Revision ID: 001_attendance_schema
Revises: None
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = '001_attendance_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'departments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_departments_name', 'departments', ['name'], unique=True)

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(50), nullable=True),
        sa.Column('badge_id', sa.String(50), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id'), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('position', sa.String(), nullable=True),
        sa.Column('salary', sa.Numeric(12, 2), nullable=True),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_employees_user_id', 'employees', ['user_id'], unique=True)
    op.create_index('ix_employees_badge_id', 'employees', ['badge_id'], unique=True)
    op.create_index('ix_employees_name', 'employees', ['name'])
    op.create_index('ix_employees_department_id', 'employees', ['department_id'])

    op.create_table(
        'shift_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('is_operational', sa.Boolean(), server_default=sa.true()),
        sa.Column('default_start_time', sa.Time(), nullable=True),
        sa.Column('default_end_time', sa.Time(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
    )

    op.create_table(
        'schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('shift_type_id', sa.Integer(), sa.ForeignKey('shift_types.id'), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('status_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('auto_computed', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_schedules_employee_id', 'schedules', ['employee_id'])
    op.create_index('ix_schedules_date', 'schedules', ['date'])
    op.create_index('ix_schedules_status', 'schedules', ['status'])

    op.create_table(
        'attendance_uploads',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('file_type', sa.String(), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('uploaded_by', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='processing'),
        sa.Column('total_rows', sa.Integer(), server_default='0'),
        sa.Column('records_processed', sa.Integer(), server_default='0'),
        sa.Column('duplicates_skipped', sa.Integer(), server_default='0'),
        sa.Column('error_rows', sa.Integer(), server_default='0'),
        sa.Column('employees_created', sa.Integer(), server_default='0'),
        sa.Column('employees_matched', sa.Integer(), server_default='0'),
        sa.Column('report_start_date', sa.Date(), nullable=True),
        sa.Column('report_end_date', sa.Date(), nullable=True),
        sa.Column('processing_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_attendance_uploads_uploaded_by', 'attendance_uploads', ['uploaded_by'])

    op.create_table(
        'attendance_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('schedules.id'), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('check_in_time', sa.DateTime(), nullable=False),
        sa.Column('check_out_time', sa.DateTime(), nullable=True),
        sa.Column('total_hours', sa.Float(), server_default='0'),
        sa.Column('regular_hours', sa.Float(), server_default='0'),
        sa.Column('raw_ot_hours', sa.Float(), server_default='0'),
        sa.Column('approved_ot_hours', sa.Float(), server_default='0'),
        sa.Column('sunday_hours', sa.Float(), server_default='0'),
        sa.Column('overnight_hours', sa.Float(), server_default='0'),
        sa.Column('is_sunday', sa.Boolean(), server_default=sa.false()),
        sa.Column('is_overnight', sa.Boolean(), server_default=sa.false()),
        sa.Column('is_incomplete', sa.Boolean(), server_default=sa.true()),
        sa.Column('approval_status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('upload_id', sa.Integer(), sa.ForeignKey('attendance_uploads.id'), nullable=True),
        sa.Column('uploaded_by', sa.String(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('employee_id', 'check_in_time', name='uq_attendance_employee_check_in'),
    )
    op.create_index('ix_attendance_logs_employee_id', 'attendance_logs', ['employee_id'])
    op.create_index('ix_attendance_logs_schedule_id', 'attendance_logs', ['schedule_id'])
    op.create_index('ix_attendance_logs_date', 'attendance_logs', ['date'])
    op.create_index('ix_attendance_logs_upload_id', 'attendance_logs', ['upload_id'])

    op.create_table(
        'overtime_approvals',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('attendance_log_id', sa.Integer(), sa.ForeignKey('attendance_logs.id'), nullable=False),
        sa.Column('approved_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(), nullable=False, server_default='approved'),
        sa.Column('approved_by', sa.String(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('note', sa.String(), nullable=True),
    )
    op.create_index('ix_overtime_approvals_attendance_log_id', 'overtime_approvals',
                    ['attendance_log_id'], unique=True)


def downgrade():
    op.drop_table('overtime_approvals')
    op.drop_table('attendance_logs')
    op.drop_table('attendance_uploads')
    op.drop_table('schedules')
    op.drop_table('shift_types')
    op.drop_table('employees')
    op.drop_table('departments')
