"""Print the Supabase schema for DriveCoach (run it in the Supabase SQL Editor)."""
# The Supabase client cannot run DDL, so this only prints the statements

SCHEMA_SQL = """
-- Driving schools
CREATE TABLE IF NOT EXISTS organizations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    logo_url TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Students
CREATE TABLE IF NOT EXISTS students (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    email TEXT,
    phone TEXT,
    license_number TEXT,
    is_archived BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Submitted mock tests (form_data holds the versioned record)
CREATE TABLE IF NOT EXISTS assessments (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
    student_id UUID NOT NULL REFERENCES students(id) ON DELETE CASCADE,
    instructor_id UUID,
    assessment_type VARCHAR(40) NOT NULL
        CHECK (assessment_type IN ('third_assessment', 'second_assessment')),
    assessment_date DATE NOT NULL,
    total_score INT CHECK (total_score IS NULL OR total_score BETWEEN 0 AND 100),
    form_data JSONB NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_students_organization_id ON students(organization_id);
CREATE INDEX IF NOT EXISTS idx_assessments_student_id ON assessments(student_id);
CREATE INDEX IF NOT EXISTS idx_assessments_date ON assessments(assessment_date DESC, created_at DESC);
"""


def statements(sql: str = SCHEMA_SQL):
    return [s.strip() for s in sql.split(";") if s.strip()]


if __name__ == "__main__":
    stmts = statements()
    print(f"DriveCoach schema: {len(stmts)} statements")
    for i, stmt in enumerate(stmts, 1):
        head = next((line for line in stmt.splitlines() if not line.startswith("--")), stmt)
        print(f"  {i}. {head[:60]}")
    print("\nRun this SQL in Supabase SQL Editor (https://app.supabase.com > SQL Editor > New Query):")
    print(SCHEMA_SQL)
