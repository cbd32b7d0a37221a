"""Payload builders shaped like the controller's JSON"""


def device(device_id, x=None, y=None, loc_type='grid', **extra):
    data = {'id': device_id, 'nodeType': 'device', 'type': 'switch', 'online': True, 'props': {}}
    if x is not None:
        data['location'] = {'locType': loc_type, 'longOrX': x, 'latOrY': y}
    data.update(extra)
    return data


def host(host_id, **extra):
    data = {'id': host_id, 'nodeType': 'host', 'ips': ['10.0.0.1'], 'props': {}}
    data.update(extra)
    return data


def link(ep_a, ep_b, port_a=None, port_b=None, **extra):
    data = {'epA': ep_a, 'epB': ep_b, 'type': 'UiDeviceLink', 'online': True}
    if port_a is not None:
        data['portA'] = port_a
    if port_b is not None:
        data['portB'] = port_b
    data.update(extra)
    return data


def region(devices=(), hosts=(), links=(), layer=2):
    devs = [[], [], []]
    hsts = [[], [], []]
    devs[layer] = list(devices)
    hsts[layer] = list(hosts)
    return {
        'id': 'root',
        'layerOrder': ['opt', 'pkt', 'def'],
        'devices': devs,
        'hosts': hsts,
        'subregions': [],
        'links': list(links),
    }


def model_event(event_type, memo, subject, data=None):
    return {'type': event_type, 'memo': memo, 'subject': subject, 'data': data or {}}
