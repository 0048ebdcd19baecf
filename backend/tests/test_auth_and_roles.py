from handrest import repositories


def test_register_login_and_me(client):
    r = client.post('/auth/register', json={'username': 'meera', 'password': 'pass123', 'full_name': 'Meera Rao', 'phone': '9876543210'})
    assert r.status_code == 200
    # registering again is idempotent
    again = client.post('/auth/register', json={'username': 'meera', 'password': 'pass123'})
    assert again.json()['id'] == r.json()['id']
    login = client.post('/auth/login', json={'username': 'meera', 'password': 'pass123'})
    assert login.status_code == 200
    headers = {'Authorization': f"Bearer {login.json()['access_token']}"}
    me = client.get('/me', headers=headers)
    assert me.status_code == 200
    assert me.json()['full_name'] == 'Meera Rao'
    assert me.json()['roles'] == ['customer']


def test_bad_credentials_and_tokens_rejected(client):
    client.post('/auth/register', json={'username': 'ravi', 'password': 'right'})
    assert client.post('/auth/login', json={'username': 'ravi', 'password': 'wrong'}).status_code == 401
    r = client.get('/me', headers={'Authorization': 'Bearer invalid.token.here'})
    assert r.status_code == 401
    assert client.get('/me').status_code in (401, 403)


def test_role_screen_requires_manager(client, customer_headers):
    assert client.get('/admin/roles', headers=customer_headers).status_code == 403
    assert client.patch('/admin/roles/1', json={'role': 'staff'}, headers=customer_headers).status_code == 403


def test_list_roles_newest_first_with_profiles(client, admin_headers, make_user):
    make_user(full_name='Older Person', phone='1111111111')
    make_user(full_name='Newer Person', phone='2222222222')
    rows = client.get('/admin/roles', headers=admin_headers).json()
    names = [r['profile']['full_name'] for r in rows if r['profile'] and r['profile']['full_name'] in ('Older Person', 'Newer Person')]
    assert names == ['Newer Person', 'Older Person']
    assert {'role_id', 'user_id', 'role', 'role_label', 'profile'} <= set(rows[0])


def test_search_matches_name_phone_and_email(client, admin_headers, make_user):
    make_user(full_name='Kavya Iyer', phone='9000012345', email='Kavya@Example.com')
    by_name = client.get('/admin/roles', params={'search': 'kavya IY'}, headers=admin_headers).json()
    assert [r['profile']['full_name'] for r in by_name] == ['Kavya Iyer']
    by_phone = client.get('/admin/roles', params={'search': '90000123'}, headers=admin_headers).json()
    assert [r['profile']['full_name'] for r in by_phone] == ['Kavya Iyer']
    by_email = client.get('/admin/roles', params={'search': 'kavya@example'}, headers=admin_headers).json()
    assert [r['profile']['full_name'] for r in by_email] == ['Kavya Iyer']
    assert client.get('/admin/roles', params={'search': 'zzz-no-match'}, headers=admin_headers).json() == []


def test_change_role_issues_one_update_for_that_row(client, admin_headers, make_user, monkeypatch):
    make_user(full_name='Future Staff')
    row = next(r for r in client.get('/admin/roles', params={'search': 'Future Staff'}, headers=admin_headers).json())
    calls = []
    original = repositories.RoleRepository.update_role

    def recording(self, role_id, role):
        calls.append((role_id, role))
        return original(self, role_id, role)

    monkeypatch.setattr(repositories.RoleRepository, 'update_role', recording)
    r = client.patch(f"/admin/roles/{row['role_id']}", json={'role': 'staff'}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()['message'] == 'Role updated successfully'
    assert r.json()['entry']['role'] == 'staff'
    assert calls == [(row['role_id'], 'staff')]


def test_change_role_failures(client, admin_headers, make_user):
    make_user(full_name='Not Super')
    row = client.get('/admin/roles', params={'search': 'Not Super'}, headers=admin_headers).json()[0]
    r = client.patch(f"/admin/roles/{row['role_id']}", json={'role': 'super_admin'}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['detail']['title'] == 'Failed to update role'
    missing = client.patch('/admin/roles/999999', json={'role': 'staff'}, headers=admin_headers)
    assert missing.status_code == 404
    assert client.patch(f"/admin/roles/{row['role_id']}", json={'role': 'owner'}, headers=admin_headers).status_code == 422


def test_role_label_replaces_underscore():
    from handrest.models import AppRole
    assert AppRole.SUPER_ADMIN.label == 'super admin'
    assert AppRole.CUSTOMER.label == 'customer'


def test_filter_by_role(client, admin_headers):
    admins = client.get('/admin/roles', params={'role': 'admin'}, headers=admin_headers).json()
    assert admins
    assert {r['role'] for r in admins} == {'admin'}
    assert client.get('/admin/roles', params={'role': 'owner'}, headers=admin_headers).status_code == 422
