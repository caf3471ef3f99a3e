from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='GuardRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('identity_key', models.CharField(help_text='Identity key, e.g. user:42 or ip:203.0.113.7', max_length=191, unique=True)),
                ('state', models.CharField(choices=[('clean', 'Clean'), ('suspicious', 'Suspicious'), ('blocked', 'Blocked')], db_index=True, default='clean', help_text='Current guard state', max_length=20)),
                ('score', models.PositiveIntegerField(default=0, help_text='Accumulated severity weight of recorded violations')),
                ('violation_count', models.PositiveIntegerField(default=0, help_text='Number of recorded rule violations')),
                ('last_rule', models.CharField(blank=True, help_text='Most recent rule that fired', max_length=64)),
                ('blocked_at', models.DateTimeField(blank=True, help_text='Timestamp when the identity was blocked', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Guard Record',
                'verbose_name_plural': 'Guard Records',
                'ordering': ['-updated_at'],
            },
        ),
        migrations.CreateModel(
            name='GuardEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('identity_key', models.CharField(db_index=True, help_text='Identity key the event belongs to', max_length=191)),
                ('kind', models.CharField(choices=[('violation', 'Violation'), ('blocked', 'Blocked'), ('reset', 'Reset')], db_index=True, default='violation', max_length=20)),
                ('rule', models.CharField(blank=True, help_text='Rule that fired', max_length=64)),
                ('severity', models.CharField(blank=True, help_text='Severity of the rule', max_length=20)),
                ('verdict', models.CharField(blank=True, help_text='Verdict returned for the request', max_length=20)),
                ('detail', models.CharField(blank=True, help_text='Short description of what matched', max_length=255)),
                ('ip_address', models.CharField(blank=True, max_length=64)),
                ('request_method', models.CharField(blank=True, max_length=10)),
                ('request_path', models.CharField(blank=True, max_length=500)),
                ('timestamp', models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                'verbose_name': 'Guard Event',
                'verbose_name_plural': 'Guard Events',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['identity_key', 'timestamp'], name='guard_event_key_ts_idx'),
                    models.Index(fields=['kind', 'timestamp'], name='guard_event_kind_ts_idx'),
                ],
            },
        ),
    ]
