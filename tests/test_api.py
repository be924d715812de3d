from conftest import ACCOUNT, OTHER_ACCOUNT

TX_HASH = '0x' + 'ab' * 32


def greeting_payload(tx_hash=TX_HASH, **overrides):
    payload = {
        'txHash': tx_hash,
        'userAddress': ACCOUNT,
        'type': 'greeting',
        'status': 'pending',
        'amount': '0.001',
        'timestamp': '2024-05-01T12:00:00Z',
        'metadata': {'message': 'hello'},
    }
    payload.update(overrides)
    return payload


def nft_payload(token_id='1', **overrides):
    payload = {
        'tokenId': token_id,
        'ownerAddress': ACCOUNT,
        'title': 'T',
        'content': 'C',
        'txHash': TX_HASH,
    }
    payload.update(overrides)
    return payload


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'healthy'}


def test_list_transactions_empty(client):
    response = client.get(f'/api/transactions/{ACCOUNT}')
    assert response.status_code == 200
    assert response.get_json() == []


def test_list_transactions_blank_address(client):
    response = client.get('/api/transactions/%20')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Address is required'


def test_create_transaction(client):
    response = client.post('/api/transactions', json=greeting_payload())
    assert response.status_code == 201

    created = response.get_json()
    assert created['id'] == 1
    assert created['txHash'] == TX_HASH
    assert created['type'] == 'greeting'
    assert created['status'] == 'pending'
    assert created['metadata'] == {'message': 'hello'}
    assert created['timestamp'].startswith('2024-05-01T12:00:00')


def test_list_transactions_is_case_insensitive(client):
    client.post('/api/transactions', json=greeting_payload())
    client.post('/api/transactions', json=greeting_payload(tx_hash='0x' + 'cd' * 32, userAddress=OTHER_ACCOUNT))

    listed = client.get(f'/api/transactions/{ACCOUNT.lower()}').get_json()
    assert [txn['txHash'] for txn in listed] == [TX_HASH]


def test_create_transaction_validation_error(client):
    response = client.post('/api/transactions', json={'txHash': TX_HASH})
    assert response.status_code == 400

    body = response.get_json()
    assert body['message'] == 'Invalid transaction data'
    assert body['errors']


def test_create_transaction_metadata_must_match_kind(client):
    response = client.post('/api/transactions', json=greeting_payload(metadata={'title': 'T', 'content': 'C'}))
    assert response.status_code == 400

    response = client.post('/api/transactions', json=greeting_payload(type='mint', metadata={'title': 'T', 'content': 'C'}))
    assert response.status_code == 201


def test_create_transaction_rejects_bad_amount(client):
    response = client.post('/api/transactions', json=greeting_payload(amount='lots'))
    assert response.status_code == 400


def test_create_transaction_missing_body(client):
    response = client.post('/api/transactions', data='not json', content_type='text/plain')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Missing JSON data'


def test_duplicate_transaction_conflicts(client):
    assert client.post('/api/transactions', json=greeting_payload()).status_code == 201

    response = client.post('/api/transactions', json=greeting_payload(metadata={'message': 'again'}))
    assert response.status_code == 409

    listed = client.get(f'/api/transactions/{ACCOUNT}').get_json()
    assert len(listed) == 1
    assert listed[0]['metadata'] == {'message': 'hello'}


def test_update_transaction_status(client):
    client.post('/api/transactions', json=greeting_payload())

    response = client.patch(f'/api/transactions/{TX_HASH}', json={'status': 'confirmed'})
    assert response.status_code == 200
    assert response.get_json()['status'] == 'confirmed'


def test_update_transaction_status_invalid(client):
    client.post('/api/transactions', json=greeting_payload())

    response = client.patch(f'/api/transactions/{TX_HASH}', json={'status': 'mined'})
    assert response.status_code == 400


def test_update_unknown_transaction(client):
    response = client.patch('/api/transactions/0xdead', json={'status': 'confirmed'})
    assert response.status_code == 404


def test_create_and_list_nfts(client):
    response = client.post('/api/nfts', json=nft_payload(token_id=42))
    assert response.status_code == 201
    assert response.get_json()['tokenId'] == '42'

    listed = client.get(f'/api/nfts/{ACCOUNT}').get_json()
    assert len(listed) == 1
    assert listed[0]['content'] == 'C'
    assert listed[0]['tokenURI'] is None


def test_create_nft_requires_content(client):
    response = client.post('/api/nfts', json=nft_payload(content=''))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid NFT data'


def test_duplicate_nft_conflicts(client):
    client.post('/api/nfts', json=nft_payload())
    response = client.post('/api/nfts', json=nft_payload(content='other'))
    assert response.status_code == 409


def test_update_nft_token_uri(client):
    client.post('/api/nfts', json=nft_payload())

    response = client.patch('/api/nfts/1', json={'tokenURI': 'ipfs://meta'})
    assert response.status_code == 200
    assert response.get_json()['tokenURI'] == 'ipfs://meta'


def test_update_nft_token_uri_missing_field(client):
    client.post('/api/nfts', json=nft_payload())

    response = client.patch('/api/nfts/1', json={})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Token ID and token URI are required'


def test_update_unknown_nft(client):
    response = client.patch('/api/nfts/999', json={'tokenURI': 'ipfs://meta'})
    assert response.status_code == 404


def test_greeting_status_without_chain(client):
    response = client.get(f'/api/greeting/{ACCOUNT}')
    assert response.status_code == 503


def test_greeting_status(wired_app, fake_chain, today):
    fake_chain.last_day = today - 1

    body = wired_app.test_client().get(f'/api/greeting/{ACCOUNT}').get_json()
    assert body['lastGreetingDay'] == today - 1
    assert body['canSendGreetingToday'] is True
