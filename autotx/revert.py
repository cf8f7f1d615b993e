def revert_reason(w3, tx_hash, block_number):
    """Replay a failed transaction at its block to recover the revert reason."""
    tx = w3.eth.get_transaction(tx_hash)
    call = {
        'from': tx['from'],
        'data': tx['input'],
        'value': tx['value'],
        'gas': tx['gas'],
        'gasPrice': tx['gasPrice'],
    }
    if tx.get('to'):
        call['to'] = tx['to']
    try:
        w3.eth.call(call, block_identifier=block_number)
    except Exception as e:
        return str(e)
    return None
