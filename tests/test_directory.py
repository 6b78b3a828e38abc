"""Tests for the directory routes and teacher authority."""
from fastapi import status

from homework_api.models import ClassLeadTeacher, SchoolClass, StudentClassAccess, TeacherClassAccess


class TestTeacherAuthorityScenario:
    def test_grant_unlocks_enrollment(self, client, db_session, admin, teacher, student, branch, school_class,
                                      auth_headers):
        enroll_url = f"/api/classes/{school_class.id}/students/{student.id}"

        denied = client.put(enroll_url, headers=auth_headers(teacher))
        assert denied.status_code == status.HTTP_403_FORBIDDEN
        assert "message" in denied.json()

        grant = client.put(
            f"/api/teachers/{teacher.id}/authority",
            json={"branchIds": [branch.id], "classIds": [school_class.id]},
            headers=auth_headers(admin),
        )
        assert grant.status_code == status.HTTP_200_OK
        assert grant.json() == {"branchIds": [branch.id], "classIds": [school_class.id], "leadClassIds": []}

        allowed = client.put(enroll_url, headers=auth_headers(teacher))
        assert allowed.status_code == status.HTTP_200_OK
        assert allowed.json()["enrolled"] is True
        assert db_session.query(StudentClassAccess).filter_by(student_id=student.id).count() == 1

    def test_revoked_grant_takes_effect_immediately(self, client, admin, teacher, student, school_class,
                                                    auth_headers):
        client.put(f"/api/teachers/{teacher.id}/authority", json={"classIds": [school_class.id]},
                   headers=auth_headers(admin))
        headers = auth_headers(teacher)
        assert client.get(f"/api/classes/{school_class.id}", headers=headers).status_code == status.HTTP_200_OK

        client.put(f"/api/teachers/{teacher.id}/authority", json={"classIds": []}, headers=auth_headers(admin))

        assert client.get(f"/api/classes/{school_class.id}", headers=headers).status_code == status.HTTP_403_FORBIDDEN

    def test_only_admin_grants_authority(self, client, teacher, school_class, auth_headers):
        response = client.put(
            f"/api/teachers/{teacher.id}/authority",
            json={"classIds": [school_class.id]},
            headers=auth_headers(teacher),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_requires_session(self, client, teacher):
        response = client.put(f"/api/teachers/{teacher.id}/authority", json={"classIds": []})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestClassTeachers:
    def test_lead_without_access_conflicts(self, client, db_session, admin, teacher, school_class, auth_headers):
        response = client.put(
            f"/api/classes/{school_class.id}/teachers/{teacher.id}",
            json={"hasAccess": True, "isLead": True},
            headers=auth_headers(admin),
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert db_session.query(ClassLeadTeacher).count() == 0

    def test_grant_then_lead(self, client, db_session, admin, teacher, school_class, auth_headers):
        url = f"/api/classes/{school_class.id}/teachers/{teacher.id}"
        headers = auth_headers(admin)

        first = client.put(url, json={"hasAccess": True, "isLead": False}, headers=headers)
        second = client.put(url, json={"hasAccess": True, "isLead": True}, headers=headers)

        assert first.json() == {"classId": school_class.id, "teacherId": teacher.id, "hasAccess": True, "isLead": False}
        assert second.json()["isLead"] is True

        listing = client.get(f"/api/classes/{school_class.id}/teachers", headers=headers)
        assert listing.status_code == status.HTTP_200_OK
        assert listing.json()[0]["teacher"]["id"] == teacher.id
        assert listing.json()[0]["isLead"] is True

        revoke = client.put(url, json={"hasAccess": False, "isLead": False}, headers=headers)
        assert revoke.json()["hasAccess"] is False
        assert db_session.query(TeacherClassAccess).count() == 0
        assert db_session.query(ClassLeadTeacher).count() == 0


class TestBranchesAndClasses:
    def test_admin_crud_and_hide(self, client, db_session, admin, auth_headers):
        headers = auth_headers(admin)

        created = client.post("/api/branches", json={"name": "North", "address": "2 Hill Road"}, headers=headers)
        assert created.status_code == status.HTTP_201_CREATED
        branch_id = created.json()["id"]

        cls = client.post(
            "/api/classes",
            json={"name": "Teens B", "branchId": branch_id, "englishLevel": "Intermediate", "ageGroup": "Teens"},
            headers=headers,
        )
        assert cls.status_code == status.HTTP_201_CREATED
        assert cls.json()["englishLevel"] == "Intermediate"

        renamed = client.put(f"/api/classes/{cls.json()['id']}", json={"name": "Teens C"}, headers=headers)
        assert renamed.json()["name"] == "Teens C"

        assert client.delete(f"/api/classes/{cls.json()['id']}", headers=headers).status_code == 204
        assert client.get("/api/classes", headers=headers).json() == []
        assert client.get(f"/api/classes/{cls.json()['id']}", headers=headers).status_code == 404
        assert db_session.get(SchoolClass, cls.json()["id"]) is not None

    def test_class_with_unknown_branch(self, client, admin, auth_headers):
        response = client.post("/api/classes", json={"name": "X", "branchId": 999}, headers=auth_headers(admin))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_teacher_cannot_create_branch(self, client, teacher, auth_headers):
        response = client.post("/api/branches", json={"name": "Nope"}, headers=auth_headers(teacher))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_teacher_sees_granted_branches_only(self, client, db_session, admin, teacher, branch, auth_headers):
        client.post("/api/branches", json={"name": "Other"}, headers=auth_headers(admin))
        client.put(f"/api/teachers/{teacher.id}/authority", json={"branchIds": [branch.id]},
                   headers=auth_headers(admin))

        response = client.get("/api/branches", headers=auth_headers(teacher))

        assert [b["id"] for b in response.json()] == [branch.id]

    def test_student_lists_enrolled_classes(self, client, db_session, enrolled_student, school_class, auth_headers):
        db_session.add(SchoolClass(name="Elsewhere"))
        db_session.commit()

        response = client.get("/api/classes", headers=auth_headers(enrolled_student))

        assert [c["id"] for c in response.json()] == [school_class.id]


class TestPeople:
    def test_admin_creates_teacher_with_forced_role(self, client, admin, auth_headers):
        response = client.post(
            "/api/teachers",
            json={"email": "new.teacher@example.com", "password": "secret-pass", "name": "Nina", "role": "ADMIN"},
            headers=auth_headers(admin),
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["role"] == "TEACHER"

    def test_teacher_detail_includes_authority(self, client, admin, teacher, branch, school_class, auth_headers):
        client.put(f"/api/teachers/{teacher.id}/authority",
                   json={"branchIds": [branch.id], "classIds": [school_class.id]}, headers=auth_headers(admin))

        response = client.get(f"/api/teachers/{teacher.id}", headers=auth_headers(admin))

        body = response.json()
        assert body["name"] == teacher.name
        assert body["branchIds"] == [branch.id]
        assert body["classIds"] == [school_class.id]
        assert "passwordHash" not in body

    def test_teacher_lists_students_of_their_classes(self, client, db_session, admin, teacher, enrolled_student,
                                                     other_student, school_class, auth_headers):
        client.put(f"/api/teachers/{teacher.id}/authority", json={"classIds": [school_class.id]},
                   headers=auth_headers(admin))

        response = client.get("/api/students", headers=auth_headers(teacher))

        assert [s["id"] for s in response.json()] == [enrolled_student.id]

    def test_hidden_student_drops_out_of_lists(self, client, admin, student, auth_headers):
        headers = auth_headers(admin)
        assert client.delete(f"/api/students/{student.id}", headers=headers).status_code == 204
        assert client.get("/api/students", headers=headers).json() == []

    def test_student_cannot_view_other_student(self, client, student, other_student, auth_headers):
        response = client.get(f"/api/students/{other_student.id}", headers=auth_headers(student))
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestOptionLists:
    def test_levels_and_age_groups(self, client, admin, student, auth_headers):
        admin_headers = auth_headers(admin)
        client.post("/api/english-levels", json={"name": "Beginner"}, headers=admin_headers)
        client.post("/api/english-levels", json={"name": "Advanced"}, headers=admin_headers)
        group = client.post("/api/age-groups", json={"name": "Children"}, headers=admin_headers)
        assert group.status_code == status.HTTP_201_CREATED

        levels = client.get("/api/english-levels", headers=auth_headers(student))

        assert [level["name"] for level in levels.json()] == ["Advanced", "Beginner"]

    def test_duplicate_option_conflicts(self, client, admin, auth_headers):
        headers = auth_headers(admin)
        client.post("/api/english-levels", json={"name": "Beginner"}, headers=headers)

        response = client.post("/api/english-levels", json={"name": "Beginner"}, headers=headers)

        assert response.status_code == status.HTTP_409_CONFLICT
