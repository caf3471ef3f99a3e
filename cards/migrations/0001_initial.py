import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='UserCard',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('card_number', models.CharField(help_text='Encoded card number', max_length=255)),
                ('card_expire', models.CharField(help_text='Encoded expiry date', max_length=255)),
                ('card_cvv', models.CharField(help_text='Encoded card verification value', max_length=255)),
                ('card_name', models.CharField(help_text="Label chosen by the user, e.g. 'My debit card'", max_length=45)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(help_text='Owner of the card', on_delete=django.db.models.deletion.CASCADE, related_name='cards', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'User Card',
                'verbose_name_plural': 'User Cards',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['user', 'created_at'], name='cards_user_created_idx')],
            },
        ),
    ]
