from datetime import date, timedelta

from app import socketio
from database import db
from models import Match, Player
from periods import previous_month_key


def ids(*players):
    return [p.id for p in players]


class TestHealth:
    def test_counts(self, client, players):
        data = client.get('/api/health').get_json()
        assert data['players'] == 4
        assert data['matches'] == 0


class TestPlayers:
    def test_list_active_and_all(self, client, players):
        assert [p['nickname'] for p in client.get('/api/players').get_json()] == ['ana', 'bruno', 'carla', 'diego']
        assert len(client.get('/api/players?all=true').get_json()) == 5

    def test_register_forces_lowest_rank(self, client, app):
        response = client.post('/api/players', json={'name': 'Fábio', 'nickname': 'fabio', 'rank': 'Marechal'})
        assert response.status_code == 201
        data = response.get_json()
        assert data['rank'] == 'Cabo'
        assert data['active'] is True

    def test_register_validation(self, client, players):
        assert client.post('/api/players', json={'name': 'X'}).status_code == 400
        assert client.post('/api/players', json={'name': 'X', 'nickname': 'x'}).status_code == 400
        duplicate = client.post('/api/players', json={'name': 'Ana 2', 'nickname': 'ana'})
        assert duplicate.status_code == 400
        assert 'already taken' in duplicate.get_json()['error']

    def test_update_keeps_nickname(self, client, players):
        player_id = players['ana'].id
        assert client.put(f'/api/players/{player_id}', json={'nickname': 'annie'}).status_code == 400

        response = client.put(f'/api/players/{player_id}', json={'name': 'Ana Paula', 'email': 'ana@example.com'})
        assert response.status_code == 200
        assert response.get_json()['name'] == 'Ana Paula'
        assert response.get_json()['nickname'] == 'ana'

    def test_non_object_bodies_are_rejected(self, client, players):
        player_id = players['ana'].id
        assert client.post('/api/players', json=['ana']).status_code == 400
        assert client.put(f'/api/players/{player_id}', json='Ana').status_code == 400
        assert client.patch(f'/api/players/{player_id}/status', json=[True]).status_code == 400
        assert client.patch(f'/api/players/{player_id}/rank', json=['Major']).status_code == 400

    def test_missing_player(self, client, app):
        assert client.get('/api/players/999').status_code == 404
        assert client.put('/api/players/999', json={'name': 'x'}).status_code == 404

    def test_status_and_rank(self, client, players):
        player_id = players['diego'].id
        assert client.patch(f'/api/players/{player_id}/status', json={'active': 'no'}).status_code == 400
        assert client.patch(f'/api/players/{player_id}/status', json={'active': False}).get_json()['active'] is False

        assert client.patch(f'/api/players/{player_id}/rank', json={'rank': 'Almirante'}).status_code == 400
        assert client.patch(f'/api/players/{player_id}/rank', json={'rank': 'Major'}).get_json()['rank'] == 'Major'

    def test_detail_includes_career(self, client, spring_matches):
        data = client.get(f"/api/players/{spring_matches['bruno'].id}").get_json()
        assert data['career'] == {'wins': 2, 'matches_played': 4, 'win_rate': 50.0, 'best_win_streak': 2}


class TestRecordMatch:
    def test_records_and_broadcasts(self, app, client, players):
        listener = socketio.test_client(app)
        ana, bruno, carla = players['ana'], players['bruno'], players['carla']

        response = client.post('/api/matches', json={
            'date': '2026-03-02',
            'winner_id': ana.id,
            'participants': ids(ana, bruno, carla),
        })
        assert response.status_code == 201
        data = response.get_json()
        assert data['winner']['nickname'] == 'ana'
        assert data['type'] == 'global'
        assert [p['nickname'] for p in data['participants']] == ['ana', 'bruno', 'carla']

        events = [e for e in listener.get_received() if e['name'] == 'match_recorded']
        assert events[0]['args'][0] == {'match_id': data['id'], 'date': '2026-03-02', 'winner_id': ana.id}
        listener.disconnect()

    def test_date_defaults_to_today(self, client, players):
        ana, bruno, carla = players['ana'], players['bruno'], players['carla']
        response = client.post('/api/matches', json={'winner_id': ana.id, 'participants': ids(ana, bruno, carla)})
        assert response.get_json()['date'] == date.today().isoformat()

    def test_validation(self, client, players):
        ana, bruno, carla, diego, eva = (players[n] for n in ('ana', 'bruno', 'carla', 'diego', 'eva'))
        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        bad_requests = [
            {'winner_id': ana.id, 'participants': ids(ana, bruno)},
            {'winner_id': diego.id, 'participants': ids(ana, bruno, carla)},
            {'winner_id': ana.id, 'participants': ids(ana, bruno, bruno)},
            {'winner_id': ana.id, 'participants': ids(ana, bruno, eva)},
            {'winner_id': ana.id, 'participants': ids(ana, bruno) + [999]},
            {'winner_id': ana.id, 'participants': ids(ana, bruno, carla), 'date': tomorrow},
            {'winner_id': ana.id, 'participants': ids(ana, bruno, carla), 'date': '02/03/2026'},
            {'winner_id': ana.id, 'participants': ids(ana, bruno, carla), 'type': 'casual'},
            {'winner_id': ana.id, 'participants': 'ana,bruno,carla'},
            {'winner_id': True, 'participants': [1, bruno.id, carla.id]},
            {'winner_id': str(ana.id), 'participants': ids(ana, bruno, carla)},
        ]
        for payload in bad_requests:
            assert client.post('/api/matches', json=payload).status_code == 400, payload
        assert Match.query.count() == 0

    def test_body_must_be_an_object(self, client, players):
        for body in ([1, 2, 3], 'match', 7):
            assert client.post('/api/matches', json=body).status_code == 400
        assert Match.query.count() == 0

    def test_list_recent_first(self, client, spring_matches):
        data = client.get('/api/matches?limit=2').get_json()
        assert [m['date'] for m in data] == ['2026-04-06', '2026-03-16']

        march = client.get('/api/matches?from=2026-03-01&to=2026-03-31').get_json()
        assert len(march) == 3
        assert client.get('/api/matches?from=March').status_code == 400


class TestRankings:
    def test_global(self, client, spring_matches):
        data = client.get('/api/ranking/global').get_json()
        assert data['period'] == 'all-time'
        assert [(r['player']['nickname'], r['wins'], r['matches_played']) for r in data['ranking']] == [
            ('bruno', 2, 4), ('ana', 2, 3), ('carla', 0, 3), ('diego', 0, 3)
        ]

    def test_global_unknown_period(self, client, app):
        assert client.get('/api/ranking/global?period=forever').status_code == 400

    def test_global_blank_period_is_all_time(self, client, spring_matches):
        data = client.get('/api/ranking/global?period=').get_json()
        assert data['period'] == 'all-time'
        assert len(data['ranking']) == 4

    def test_monthly(self, client, spring_matches):
        data = client.get('/api/ranking/mensal/2026/3').get_json()
        assert data['period'] == 'March/2026'
        assert data['winner']['nickname'] == 'ana'
        assert data['ranking'][0]['win_rate'] == 66.7

        empty = client.get('/api/ranking/mensal/2026/1').get_json()
        assert empty['ranking'] == []
        assert empty['winner'] is None

    def test_monthly_rejects_bad_month(self, client, app):
        assert client.get('/api/ranking/mensal/2026/13').status_code == 400
        assert client.get('/api/ranking/mensal/abc/1').status_code == 400

    def test_current_month(self, client, app):
        today = date.today()
        data = client.get('/api/ranking/mensal').get_json()
        assert (data['year'], data['month']) == (today.year, today.month)

    def test_performance(self, client, spring_matches):
        data = client.get('/api/ranking/performance').get_json()
        assert data['min_matches'] == 3
        assert [(r['player']['nickname'], r['performance_percent'], r['level']) for r in data['ranking']] == [
            ('ana', 66.7, 'Advanced'), ('bruno', 50.0, 'Intermediate'),
            ('carla', 0.0, 'Beginner'), ('diego', 0.0, 'Beginner'),
        ]
        assert client.get('/api/ranking/performance?min_matches=lots').status_code == 400

    def test_attendance(self, client, spring_matches):
        data = client.get('/api/ranking/attendance?top=1').get_json()
        assert [(r['player']['nickname'], r['matches_played']) for r in data] == [('bruno', 4)]

    def test_streak(self, client, spring_matches):
        data = client.get('/api/ranking/streak').get_json()
        assert (data['player']['nickname'], data['streak']) == ('ana', 2)

    def test_streak_without_matches(self, client, players):
        assert client.get('/api/ranking/streak').get_json() == {'player': None, 'streak': 0}


class TestStatistics:
    def test_sections(self, client, spring_matches):
        data = client.get('/api/statistics').get_json()
        assert data['errors'] == []
        assert data['summary']['total_players'] == 4
        assert data['summary']['total_matches'] == 4
        assert data['summary']['most_wins_holder']['nickname'] == 'bruno'
        assert data['records'] == {}

    def test_failing_section_does_not_blank_the_rest(self, client, players, monkeypatch):
        import routes.rankings as rankings

        def broken():
            raise RuntimeError('boom')

        sections = tuple((name, broken if name == 'records' else build)
                         for name, build in rankings.STATISTICS_SECTIONS)
        monkeypatch.setattr(rankings, 'STATISTICS_SECTIONS', sections)

        data = client.get('/api/statistics').get_json()
        assert data['errors'] == ['records']
        assert data['records'] is None
        assert data['summary']['total_players'] == 4


class TestMonthlyWinners:
    def test_year_slots(self, client, app):
        data = client.get('/api/monthly-winners/2026').get_json()
        assert len(data['months']) == 12
        assert data['months'][0]['month_name'] == 'January'
        assert data['annual'] is None
        assert client.get('/api/monthly-winners/twenty').status_code == 400

    def test_snapshot_current_month_is_refused(self, client, app):
        today = date.today()
        response = client.post(f'/api/monthly-winners/{today.year}/{today.month}')
        assert response.status_code == 400
        assert response.get_json()['code'] == 'month_not_closed'

    def test_snapshot_previous_month(self, client, app, players):
        year, month = previous_month_key()
        app.config['MONTHLY_WINNERS_START_YEAR'] = year
        ana, bruno, carla = players['ana'], players['bruno'], players['carla']
        db.session.add(Match(date=date(year, month, 10), winner_id=bruno.id, participants=[ana, bruno, carla]))
        db.session.commit()

        first = client.post(f'/api/monthly-winners/{year}/{month}')
        assert first.status_code == 201
        assert first.get_json()['winner']['nickname'] == 'bruno'

        again = client.post(f'/api/monthly-winners/{year}/{month}')
        assert again.status_code == 200
        assert again.get_json()['outcome'] == 'unchanged'

        slots = client.get(f'/api/monthly-winners/{year}').get_json()['months']
        assert slots[month - 1]['nickname'] == 'bruno'

    def test_status_and_years(self, client, app):
        status = client.get('/api/monthly-winners/status').get_json()
        assert status['start_year'] == 2026
        assert isinstance(client.get('/api/monthly-winners/years').get_json(), list)

    def test_run_and_rank_audit(self, client, spring_matches):
        data = client.post('/api/maintenance/run').get_json()
        assert data['statistics'] == {'consecutive_win_record': 'created', 'most_wins_record': 'created'}

        audit = client.get('/api/maintenance/rank-audit').get_json()
        assert audit['below_guideline'] == 0
        assert len(audit['players']) == 5

    def test_inactive_player_stays_in_history(self, client, spring_matches):
        carla = db.session.get(Player, spring_matches['carla'].id)
        carla.active = False
        db.session.commit()

        everyone = client.get('/api/ranking/global').get_json()['ranking']
        active = client.get('/api/ranking/global?active_only=true').get_json()['ranking']
        assert 'carla' in [r['player']['nickname'] for r in everyone]
        assert 'carla' not in [r['player']['nickname'] for r in active]
